"""
The scheduling directive returned by every reconcile
"""

# Standard
from dataclasses import dataclass, field
from typing import Optional
import datetime

# Local
from . import config

## Data models #################################################################


@dataclass
class RequeueParams:
    """RequeueParams holds parameters for requeue request"""

    requeue_after: datetime.timedelta = field(
        default_factory=lambda: datetime.timedelta(
            seconds=float(config.resync_interval_seconds)
        )
    )


@dataclass
class ReconciliationResult:
    """ReconciliationResult is the result of a single reconcile"""

    # Flag to control requeue of current reconcile request
    requeue: bool
    # Parameters for requeue request
    requeue_params: RequeueParams = field(default_factory=RequeueParams)
    # The failure that ended the reconcile, if any
    exception: Optional[Exception] = None

    @classmethod
    def await_next_event(cls) -> "ReconciliationResult":
        """Do not revisit until the event source delivers a new event"""
        return cls(requeue=False)

    @classmethod
    def requeue_after(
        cls, seconds: float, exception: Optional[Exception] = None
    ) -> "ReconciliationResult":
        """Revisit after the given delay regardless of new events"""
        return cls(
            requeue=True,
            requeue_params=RequeueParams(
                requeue_after=datetime.timedelta(seconds=float(seconds))
            ),
            exception=exception,
        )
