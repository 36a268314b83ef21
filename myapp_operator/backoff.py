"""
The error policy turns a failed reconcile into a requeue and an error count.
Every failure is retryable, so the policy only decides how long to wait.
"""

# Standard
from typing import Callable, Dict, Optional
import abc
import random

# First Party
import alog

# Local
from . import config, constants
from .exceptions import MyAppError
from .metrics import MetricsSinkBase, NoOpMetrics
from .result import ReconciliationResult
from .store.base import ObjectRef

log = alog.use_channel("BKOFF")


def error_kind(error: Exception) -> str:
    """The metric label for a failure. Anything that is not a MyAppError is a
    bug and counts as unexpected.
    """
    if isinstance(error, MyAppError):
        return error.kind
    return constants.UNEXPECTED_ERROR


class ErrorPolicyBase(abc.ABC):
    """Base class for error policies. The policy owns counting the failure so
    every failure is counted exactly once.
    """

    def __init__(self, metrics: Optional[MetricsSinkBase] = None):
        self.metrics = metrics or NoOpMetrics()

    def handle(self, resource_ref: ObjectRef, error: Exception) -> ReconciliationResult:
        """Count the failure and decide when to retry

        Args:
            resource_ref:  ObjectRef
                The object whose reconcile failed
            error:  Exception
                The failure

        Returns:
            result:  ReconciliationResult
                A requeue carrying the failure
        """
        kind = error_kind(error)
        self.metrics.error(kind, resource_ref.namespace or "")
        delay = self.requeue_delay(kind)
        log.warning(
            "Reconcile of %s failed with %s, requeuing in %.1fs: %s",
            resource_ref,
            kind,
            delay,
            error,
        )
        return ReconciliationResult.requeue_after(delay, exception=error)

    @abc.abstractmethod
    def requeue_delay(self, kind: str) -> float:
        """Seconds to wait before retrying a failure of the given kind"""


class FixedDelayErrorPolicy(ErrorPolicyBase):
    """Requeue every failure after the same fixed delay, unless an override is
    given for its kind. An optional uniform jitter spreads retries out.
    """

    def __init__(
        self,
        metrics: Optional[MetricsSinkBase] = None,
        delay_seconds: Optional[float] = None,
        overrides: Optional[Dict[str, float]] = None,
        jitter_seconds: Optional[float] = None,
        rand: Callable[[float, float], float] = random.uniform,
    ):
        super().__init__(metrics)
        self.delay_seconds = float(
            config.error_requeue_seconds if delay_seconds is None else delay_seconds
        )
        self.overrides = dict(
            config.error_requeue_overrides if overrides is None else overrides
        )
        self.jitter_seconds = float(
            config.error_requeue_jitter_seconds
            if jitter_seconds is None
            else jitter_seconds
        )
        self._rand = rand

    def requeue_delay(self, kind: str) -> float:
        delay = float(self.overrides.get(kind, self.delay_seconds))
        if self.jitter_seconds > 0:
            delay += self._rand(0, self.jitter_seconds)
        return delay
