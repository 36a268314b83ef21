"""
The WorkQueue runs reconciles on a pool of worker threads. It guarantees that an
object is never reconciled concurrently with itself while distinct objects
reconcile in parallel with no ordering between them.
"""

# Standard
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Dict, List, Optional, Set
import threading

# First Party
import alog

# Local
from .. import config
from ..result import ReconciliationResult
from ..store.base import ObjectRef
from .base import ThreadBase
from .timer import TimerEvent, TimerThread

log = alog.use_channel("WRKQ")


class WorkQueue:
    """Queue of object refs to reconcile

    A ref can be in at most one of these places at a time:
        * ready: waiting for a free worker
        * in flight: being reconciled by a worker
        * scheduled: waiting on the timer for a requeue

    A ref enqueued while in flight is remembered once as pending and run again
    as soon as the current pass ends. An enqueue also cancels any scheduled
    requeue since the new pass supersedes it.
    """

    def __init__(
        self,
        reconcile_fn: Callable[[ObjectRef], ReconciliationResult],
        max_workers: Optional[int] = None,
        timer: Optional[TimerThread] = None,
    ):
        """
        Args:
            reconcile_fn:  Callable[[ObjectRef], ReconciliationResult]
                Function running one reconcile. It must not raise.
            max_workers:  Optional[int]
                Size of the worker pool. Defaults to max_concurrent_reconciles.
            timer:  Optional[TimerThread]
                Timer used for requeues. A private one is created if not given.
        """
        self._reconcile_fn = reconcile_fn
        self._max_workers = max_workers or config.max_concurrent_reconciles
        self._timer = timer or TimerThread()

        self._condition = threading.Condition()
        self._ready: Deque[ObjectRef] = deque()
        self._in_flight: Set[ObjectRef] = set()
        self._pending: Set[ObjectRef] = set()
        self._scheduled: Dict[ObjectRef, TimerEvent] = {}
        self._workers: List[_WorkerThread] = []
        self._shutdown = threading.Event()

    ## Lifecycle ###############################################################

    def start(self):
        """Start the timer and the worker pool"""
        self._timer.start_thread()
        with self._condition:
            while len(self._workers) < self._max_workers:
                worker = _WorkerThread(self, f"reconcile_worker_{len(self._workers)}")
                self._workers.append(worker)
                worker.start_thread()

    def stop(self):
        """Stop handing out work. In flight reconciles run to completion."""
        log.info("Stopping work queue")
        self._shutdown.set()
        self._timer.stop_thread()
        with self._condition:
            for event in self._scheduled.values():
                event.cancel()
            self._scheduled.clear()
            for worker in self._workers:
                worker.stop_thread()
            self._condition.notify_all()

    ## Public Interface ########################################################

    def enqueue(self, ref: ObjectRef):
        """Request a reconcile of the given object"""
        with self._condition:
            scheduled = self._scheduled.pop(ref, None)
            if scheduled is not None:
                log.debug3("Cancelling scheduled requeue of %s", ref)
                scheduled.cancel()
            self._add(ref)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is ready or in flight. Scheduled requeues do
        not count as work.

        Returns:
            idle:  bool
                False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(
                lambda: not self._ready and not self._in_flight, timeout=timeout
            )

    def is_scheduled(self, ref: ObjectRef) -> bool:
        with self._condition:
            return ref in self._scheduled

    def __len__(self) -> int:
        with self._condition:
            return len(self._ready)

    ## Worker Interface ########################################################

    def _next(self, worker: ThreadBase) -> Optional[ObjectRef]:
        """Block until a ref is ready, then mark it in flight. None once the
        queue or the worker is stopped.
        """
        with self._condition:
            self._condition.wait_for(
                lambda: self._ready
                or self._shutdown.is_set()
                or worker.should_stop()
            )
            if self._shutdown.is_set() or worker.should_stop():
                return None
            ref = self._ready.popleft()
            self._in_flight.add(ref)
            return ref

    def _run(self, ref: ObjectRef):
        """Run one reconcile and route the follow-up"""
        result = None
        try:
            result = self._reconcile_fn(ref)
        finally:
            with self._condition:
                self._in_flight.discard(ref)
                if ref in self._pending:
                    log.debug2("Running pending reconcile of %s", ref)
                    self._pending.discard(ref)
                    self._add(ref)
                elif result is not None and result.requeue:
                    self._schedule(ref, result)
                self._condition.notify_all()

    ## Implementation Details ##################################################

    def _add(self, ref: ObjectRef):
        """Place a ref in the ready queue unless it is already waiting. Must be
        called with the condition held.
        """
        if ref in self._in_flight:
            log.debug3("%s is in flight, marking pending", ref)
            self._pending.add(ref)
        elif ref not in self._ready:
            log.debug3("Queueing %s", ref)
            self._ready.append(ref)
            self._condition.notify_all()

    def _schedule(self, ref: ObjectRef, result: ReconciliationResult):
        """Schedule a requeue on the timer. Must be called with the condition
        held.
        """
        if self._shutdown.is_set():
            return
        delay = result.requeue_params.requeue_after
        log.debug2("Requeuing %s in %s", ref, delay)
        event = self._timer.put_event(datetime.now() + delay, self._requeue, ref)
        if event is not None:
            self._scheduled[ref] = event

    def _requeue(self, ref: ObjectRef):
        """Timer action for a scheduled requeue"""
        with self._condition:
            self._scheduled.pop(ref, None)
            self._add(ref)


class _WorkerThread(ThreadBase):
    """A single reconcile worker pulling refs from the queue"""

    def __init__(self, work_queue: WorkQueue, name: str):
        super().__init__(name=name, daemon=True)
        self.work_queue = work_queue

    def run(self):
        while not self.should_stop():
            ref = self.work_queue._next(self)  # pylint: disable=protected-access
            if ref is None:
                return
            self.work_queue._run(ref)  # pylint: disable=protected-access
