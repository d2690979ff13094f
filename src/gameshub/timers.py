"""Fire-once timers that engines can cancel when a game is torn down."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import heapq
import itertools
import logging
import threading

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


@dataclass(eq=False)
class TimerHandle:
    """Ticket for one scheduled callback."""

    delay: float
    callback: Callback = field(repr=False)
    cancelled: bool = False
    fired: bool = False
    _timer: Optional[threading.Timer] = field(default=None, init=False, repr=False)

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if self.cancelled or self.fired:
            return
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()

    def fire(self) -> None:
        # A cancelled handle may still be woken up by a timer that already
        # expired; the flag is the source of truth.
        if not self.pending:
            return
        self.fired = True
        self.callback()


class Scheduler(ABC):
    """Schedule/cancel interface used by every engine."""

    @abstractmethod
    def schedule(self, delay: float, callback: Callback) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds unless cancelled."""


class ThreadingScheduler(Scheduler):
    """Runs callbacks on ``threading.Timer`` threads under a shared lock.

    The lock is the session lock, so a callback never interleaves with a
    request handler touching the same engines.
    """

    def __init__(self, lock: Optional[threading.RLock] = None):
        self.lock = lock if lock is not None else threading.RLock()

    def schedule(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(delay=max(0.0, delay), callback=callback)

        def run() -> None:
            with self.lock:
                if not handle.pending:
                    logger.debug("Skipping cancelled timer %r", handle)
                    return
                handle.fire()

        timer = threading.Timer(handle.delay, run)
        timer.daemon = True
        handle._timer = timer
        timer.start()
        return handle


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler; time only moves when ``advance`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[tuple] = []
        self._counter = itertools.count()

    def schedule(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(delay=max(0.0, delay), callback=callback)
        heapq.heappush(self._queue, (self.now + handle.delay, next(self._counter), handle))
        return handle

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._queue if h.pending)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing everything that falls due."""
        target = self.now + max(0.0, seconds)
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self.now = due
            handle.fire()
        self.now = target

    def run_all(self) -> None:
        while self._queue:
            due, _, handle = heapq.heappop(self._queue)
            self.now = max(self.now, due)
            handle.fire()
