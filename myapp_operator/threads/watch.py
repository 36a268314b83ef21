"""The WatchThread Class is responsible for feeding resource events from the
store into the work queue
"""

# Standard
from typing import Optional

# First Party
import alog

# Local
from ..exceptions import StoreError
from ..store.base import ObjectStoreBase
from .base import ThreadBase
from .work_queue import WorkQueue

log = alog.use_channel("WTCHTHRD")

# Seconds to wait before restarting a watch that failed
WATCH_RETRY_DELAY = 5


class WatchThread(ThreadBase):
    """The WatchThread streams events for a single apiVersion/kind, either
    cluster-wide or for a particular namespace, and enqueues the identity of
    every object that changed. It keeps no state about the objects since the
    reconcile always reads the current state from the store.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store: ObjectStoreBase,
        work_queue: WorkQueue,
        api_version: str,
        kind: str,
        namespace: Optional[str] = None,
        retry_delay: float = WATCH_RETRY_DELAY,
    ):
        """
        Args:
            store:  ObjectStoreBase
                A store providing watch_objects
            work_queue:  WorkQueue
                The queue to submit refs to
            api_version:  str
                The api_version to watch
            kind:  str
                The kind to watch
            namespace:  Optional[str]
                The namespace to watch. If none then cluster-wide
            retry_delay:  float
                Seconds to wait before restarting a failed watch
        """
        self.store = store
        self.work_queue = work_queue
        self.api_version = api_version
        self.kind = kind
        self.namespace = namespace or None
        self.retry_delay = retry_delay

        name = f"watch_thread_{self.api_version}_{self.kind}"
        if self.namespace:
            name = name + f"_{self.namespace}"
        super().__init__(name=name, daemon=True)

    def run(self):
        """Continuously watch the store and enqueue every event. A failed
        watch is restarted after the retry delay.
        """
        while not self.should_stop():
            try:
                for event in self.store.watch_objects(
                    self.api_version,
                    self.kind,
                    namespace=self.namespace,
                ):
                    if self.should_stop():
                        log.debug("Watch thread stopped")
                        return
                    log.debug2("Received %s event for %s", event.type.value, event.ref)
                    self.work_queue.enqueue(event.ref)

            except StoreError as err:
                log.warning(
                    "Watch of %s/%s failed, restarting in %ss: %s",
                    self.api_version,
                    self.kind,
                    self.retry_delay,
                    err,
                )
                if not self.wait_on_precondition(self.retry_delay):
                    return
