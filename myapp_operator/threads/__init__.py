"""
Threads that drive reconciles: the shared timer, the reconcile work queue and
the watch feeding it
"""

# Local
from .base import ThreadBase
from .timer import TimerEvent, TimerThread
from .watch import WatchThread
from .work_queue import WorkQueue
