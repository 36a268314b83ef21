"""
The MyAppController wires the reconciliation engine to its event source: a watch
on MyApp objects feeding a work queue whose workers run reconciles
"""

# Standard
from typing import Optional

# First Party
import alog

# Local
from . import constants
from .backoff import ErrorPolicyBase
from .metrics import MetricsSinkBase, NoOpMetrics
from .reconcile import ReconcileManager
from .store.base import ObjectStoreBase
from .threads import TimerThread, WatchThread, WorkQueue

log = alog.use_channel("CTRLR")


class MyAppController:
    """Runs the control loop for every MyApp visible to the store"""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store: ObjectStoreBase,
        metrics: Optional[MetricsSinkBase] = None,
        error_policy: Optional[ErrorPolicyBase] = None,
        namespace: Optional[str] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            store:  ObjectStoreBase
                The store to watch and reconcile against. It must provide
                watch_objects.
            metrics:  Optional[MetricsSinkBase]
                Sink shared by every component
            error_policy:  Optional[ErrorPolicyBase]
                Policy for failed reconciles
            namespace:  Optional[str]
                Namespace to watch. All namespaces if not given.
            max_workers:  Optional[int]
                Size of the reconcile worker pool
        """
        self.store = store
        self.metrics = metrics or NoOpMetrics()
        self.reconcile_manager = ReconcileManager(
            store, metrics=self.metrics, error_policy=error_policy
        )
        self.work_queue = WorkQueue(
            self.reconcile_manager.safe_reconcile,
            max_workers=max_workers,
            timer=TimerThread(name="requeue_timer"),
        )
        self.watch_thread = WatchThread(
            store,
            self.work_queue,
            constants.API_VERSION,
            constants.KIND,
            namespace=namespace,
        )
        self._started = False

    def start(self):
        """Start the workers, then the watch feeding them"""
        log.info("Starting MyApp controller")
        self.work_queue.start()
        self.watch_thread.start_thread()
        self._started = True

    def stop(self):
        """Stop the watch and the workers. In flight reconciles finish."""
        log.info("Stopping MyApp controller")
        self.watch_thread.stop_thread()
        self.work_queue.stop()
        self._started = False

    def is_ready(self) -> bool:
        """Ready once started and while the watch is alive"""
        return self._started and self.watch_thread.is_alive()
