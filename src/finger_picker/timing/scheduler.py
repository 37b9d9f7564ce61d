"""
Clock and scheduler abstraction.

The selection engine never sleeps and never starts threads. All waiting is
expressed as "call this back in N ms"; whoever owns the host loop decides how
time passes:

    VirtualScheduler    - deterministic clock advanced explicitly (tests,
                          script replay, fairness trials)
    MonotonicScheduler  - time.monotonic() clock; the host's render/event
                          loop calls run_due() once per frame

Both fire due callbacks in due-time order (FIFO for equal due times) on the
caller's thread, so the engine stays single-threaded and lock-free.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple
import heapq
import itertools
import logging
import time

logger = logging.getLogger('finger-picker.scheduler')

# Rebuild the heap once cancelled entries are more than half of a heap this big
MIN_COMPACT_SIZE = 100
MAX_CANCELLED_FRACTION = 0.5


class TimerHandle:
    """Cancellable one-shot delayed callback."""

    __slots__ = ('due_ms', 'callback', 'seq', 'cancelled', 'fired', '_scheduler')

    def __init__(
        self,
        due_ms: float,
        callback: Callable[[], None],
        seq: int,
        scheduler: Optional["Scheduler"] = None
    ):
        self.due_ms = due_ms
        self.callback = callback
        self.seq = seq
        self.cancelled = False
        self.fired = False
        self._scheduler = scheduler

    @property
    def active(self) -> bool:
        """True while the callback is still going to run."""
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if not self.active:
            return
        self.cancelled = True
        if self._scheduler is not None:
            self._scheduler._timer_cancelled()

    def __repr__(self):
        state = 'active' if self.active else ('fired' if self.fired else 'cancelled')
        return f"TimerHandle(due={self.due_ms:.1f}ms, {state})"


class Scheduler(ABC):
    """Base scheduler: a clock plus a heap of pending timers."""

    def __init__(self):
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._cancelled_count = 0

    @abstractmethod
    def now(self) -> float:
        """Current time in milliseconds."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Schedule `callback` to run `delay_ms` from now.

        Raises:
            ValueError: Negative delay
        """
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        handle = TimerHandle(self.now() + delay_ms, callback, next(self._seq), self)
        heapq.heappush(self._queue, (handle.due_ms, handle.seq, handle))
        return handle

    def pending_count(self) -> int:
        """Number of timers that have neither fired nor been cancelled."""
        return len(self._queue) - self._cancelled_count

    def queue_size(self) -> int:
        """Heap entries including cancelled timers not yet discarded."""
        return len(self._queue)

    def next_due(self) -> Optional[float]:
        """Due time of the earliest active timer, or None."""
        self._drop_cancelled()
        return self._queue[0][0] if self._queue else None

    def _timer_cancelled(self) -> None:
        self._cancelled_count += 1
        if (len(self._queue) > MIN_COMPACT_SIZE and
                self._cancelled_count > MAX_CANCELLED_FRACTION * len(self._queue)):
            self._compact()

    def _compact(self) -> None:
        before = len(self._queue)
        self._queue = [entry for entry in self._queue if entry[2].active]
        heapq.heapify(self._queue)
        self._cancelled_count = 0
        logger.debug(f"Compacted timer heap: {before} -> {len(self._queue)} entries")

    def _drop_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)
            self._cancelled_count -= 1

    def _pop_due(self, limit_ms: float) -> Optional[TimerHandle]:
        self._drop_cancelled()
        if self._queue and self._queue[0][0] <= limit_ms:
            return heapq.heappop(self._queue)[2]
        return None

    def _fire(self, handle: TimerHandle) -> None:
        handle.fired = True
        handle.callback()


class VirtualScheduler(Scheduler):
    """
    Deterministic scheduler for time-travel testing.

    Usage:
        scheduler = VirtualScheduler()
        engine = SelectionEngine(registry, config, scheduler)
        scheduler.advance(2000)   # fires the dwell timer
    """

    def __init__(self, start_ms: float = 0.0):
        super().__init__()
        self._now = float(start_ms)

    def now(self) -> float:
        return self._now

    def advance_to(self, t_ms: float) -> int:
        """
        Move the clock to `t_ms`, firing every timer due on the way.

        The clock reads each timer's due time while its callback runs.
        Timers scheduled by those callbacks fire too if they fall due
        before `t_ms`.

        Returns:
            Number of callbacks fired
        """
        if t_ms < self._now:
            raise ValueError(f"Cannot move clock backwards ({t_ms} < {self._now})")

        fired = 0
        while True:
            handle = self._pop_due(t_ms)
            if handle is None:
                break
            self._now = max(self._now, handle.due_ms)
            self._fire(handle)
            fired += 1

        self._now = float(t_ms)
        return fired

    def advance(self, delta_ms: float) -> int:
        """Advance the clock by `delta_ms`."""
        return self.advance_to(self._now + delta_ms)


class MonotonicScheduler(Scheduler):
    """
    Wall-clock scheduler for a live host loop.

    The host calls run_due() every frame (or whenever its event loop wakes
    up) and may sleep for time_until_next() between frames.
    """

    def __init__(self):
        super().__init__()
        self._origin = time.monotonic()

    def now(self) -> float:
        return (time.monotonic() - self._origin) * 1000.0

    def run_due(self) -> int:
        """Fire every timer due at the current instant; return how many fired."""
        limit = self.now()
        fired = 0
        while True:
            handle = self._pop_due(limit)
            if handle is None:
                break
            self._fire(handle)
            fired += 1
        return fired

    def time_until_next(self) -> Optional[float]:
        """Milliseconds until the next timer is due (0 if overdue), or None."""
        due = self.next_due()
        if due is None:
            return None
        return max(0.0, due - self.now())
