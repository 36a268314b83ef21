"""
Shared lifecycle for the controller's background threads
"""

# Standard
from typing import Optional
import threading

# First Party
import alog

log = alog.use_channel("THRD")


class ThreadBase(threading.Thread):
    """A thread that can be asked to stop. Subclasses implement run and poll
    should_stop (or wait_on_precondition) to exit cleanly.
    """

    def __init__(self, name: Optional[str] = None, daemon: Optional[bool] = None):
        self.shutdown = threading.Event()
        super().__init__(name=name, daemon=daemon)

    def run(self):
        raise NotImplementedError()

    ## Lifecycle ###############################################################

    def start_thread(self):
        """Start the thread unless it is already running"""
        if self.is_alive():
            log.debug2("%s is already running", self.name)
            return
        log.info("Starting %s: %s", self.__class__.__name__, self.name)
        self.start()

    def stop_thread(self):
        """Ask the thread to stop. This does not wait for it to exit."""
        log.info("Stopping %s: %s", self.__class__.__name__, self.name)
        self.shutdown.set()

    def should_stop(self) -> bool:
        return self.shutdown.is_set()

    def wait_on_precondition(self, timeout: float) -> bool:
        """Sleep for up to timeout seconds, waking early on stop

        Returns:
            keep_running:  bool
                False if the thread was asked to stop while waiting
        """
        return not self.shutdown.wait(timeout)
