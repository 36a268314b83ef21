"""
Metrics sinks record what the controller and the webhook do. A sink is
constructed once at startup and handed to every component that reports, so
tests can swap in a no-op or recording sink.
"""

# Standard
from typing import Optional, Tuple
import abc

# Third Party
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

# First Party
import alog

log = alog.use_channel("METRC")

# Values of the reconcile result label
RESULT_SUCCESS = "success"
RESULT_ERROR = "error"

# Values of the webhook labels
WEBHOOK_VALIDATE = "validate"
WEBHOOK_MUTATE = "mutate"
WEBHOOK_ALLOWED = "allowed"
WEBHOOK_DENIED = "denied"
WEBHOOK_ERROR = "error"

RECONCILE_DURATION_BUCKETS = (0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0)
WEBHOOK_DURATION_BUCKETS = (0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0)


class MetricsSinkBase(abc.ABC):
    """Interface for every metrics sink"""

    @abc.abstractmethod
    def reconcile_started(self, namespace: str):
        """A reconcile of an object in the namespace started"""

    @abc.abstractmethod
    def reconcile_finished(
        self, namespace: str, name: str, result: str, duration: float
    ):
        """A reconcile finished with the given result after duration seconds"""

    @abc.abstractmethod
    def managed_resources(self, resource_type: str, namespace: str, count: int):
        """The number of children of the type found in the namespace"""

    @abc.abstractmethod
    def error(self, error_type: str, namespace: str):
        """A reconcile failed with the given error kind"""

    @abc.abstractmethod
    def webhook_request(self, webhook_type: str, result: str, duration: float):
        """An admission request was answered"""


class NoOpMetrics(MetricsSinkBase):
    """Sink that drops everything"""

    def reconcile_started(self, namespace: str):
        pass

    def reconcile_finished(
        self, namespace: str, name: str, result: str, duration: float
    ):
        pass

    def managed_resources(self, resource_type: str, namespace: str, count: int):
        pass

    def error(self, error_type: str, namespace: str):
        pass

    def webhook_request(self, webhook_type: str, result: str, duration: float):
        pass


class PrometheusMetrics(MetricsSinkBase):
    """Sink that records into a prometheus registry owned by this instance"""

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        version: Optional[str] = None,
    ):
        self.registry = registry or CollectorRegistry()
        self.reconcile_total = Counter(
            "myapp_reconcile_total",
            "Reconcile attempts",
            ["namespace", "name", "result"],
            registry=self.registry,
        )
        self.reconcile_duration = Histogram(
            "myapp_reconcile_duration_seconds",
            "Time spent in a single reconcile",
            ["namespace", "name"],
            buckets=RECONCILE_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.managed_resources_gauge = Gauge(
            "myapp_managed_resources_total",
            "Children currently managed by the controller",
            ["resource_type", "namespace"],
            registry=self.registry,
        )
        self.errors_total = Counter(
            "myapp_errors_total",
            "Reconcile failures by kind",
            ["error_type", "namespace"],
            registry=self.registry,
        )
        self.webhook_requests = Counter(
            "myapp_webhook_requests_total",
            "Admission requests",
            ["webhook_type", "result"],
            registry=self.registry,
        )
        self.webhook_duration = Histogram(
            "myapp_webhook_duration_seconds",
            "Time spent answering an admission request",
            ["webhook_type"],
            buckets=WEBHOOK_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.active_reconciles = Gauge(
            "myapp_active_reconciles",
            "Reconciles currently in flight",
            ["namespace"],
            registry=self.registry,
        )
        self.controller_info = Info(
            "myapp_controller",
            "Controller build information",
            registry=self.registry,
        )
        if version is not None:
            self.controller_info.info({"version": version})

    ## Interface ###############################################################

    def reconcile_started(self, namespace: str):
        self.active_reconciles.labels(namespace=namespace).inc()

    def reconcile_finished(
        self, namespace: str, name: str, result: str, duration: float
    ):
        self.active_reconciles.labels(namespace=namespace).dec()
        self.reconcile_total.labels(namespace=namespace, name=name, result=result).inc()
        self.reconcile_duration.labels(namespace=namespace, name=name).observe(
            duration
        )

    def managed_resources(self, resource_type: str, namespace: str, count: int):
        self.managed_resources_gauge.labels(
            resource_type=resource_type, namespace=namespace
        ).set(count)

    def error(self, error_type: str, namespace: str):
        log.debug2("Counting %s in %s", error_type, namespace)
        self.errors_total.labels(error_type=error_type, namespace=namespace).inc()

    def webhook_request(self, webhook_type: str, result: str, duration: float):
        self.webhook_requests.labels(webhook_type=webhook_type, result=result).inc()
        self.webhook_duration.labels(webhook_type=webhook_type).observe(duration)

    ## Exposition ##############################################################

    def render(self) -> Tuple[bytes, str]:
        """Render the registry in the prometheus text format

        Returns:
            body:  bytes
                The exposition text
            content_type:  str
                The content type to serve it with
        """
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
