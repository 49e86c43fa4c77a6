"""Schedulers - Cancellable delayed calls for the debounce and progression timers.

The arbiter and progression tracker only ever ask for "call this in N
seconds" and "never mind". Three hosts are provided:

- ManualScheduler: virtual clock, advanced explicitly (tests, replays)
- AsyncioScheduler: an asyncio event loop
- ThreadingScheduler: one ``threading.Timer`` per call
"""

import asyncio
import heapq
import itertools
import threading
import time
from typing import Callable, List, Optional


class TimerHandle:
    """Handle to a scheduled callback."""

    def cancel(self) -> None:
        raise NotImplementedError

    @property
    def cancelled(self) -> bool:
        raise NotImplementedError


class Scheduler:
    """Something that can run a callback after a delay."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Schedule a callback.

        Args:
            delay: Seconds from now (negative counts as 0)
            callback: Called with no arguments

        Returns:
            Handle that cancels the call if it has not fired yet
        """
        raise NotImplementedError

    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""
        return time.monotonic()


# ----------------------------------------------------------------------
# Manual (virtual time)
# ----------------------------------------------------------------------


class _ManualHandle(TimerHandle):
    def __init__(self, when: float, seq: int, callback: Callable[[], None]):
        self.when = when
        self.seq = seq
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __lt__(self, other: "_ManualHandle") -> bool:
        return (self.when, self.seq) < (other.when, other.seq)


class ManualScheduler(Scheduler):
    """Scheduler driven by an explicit virtual clock.

    Nothing fires until ``advance``/``advance_to`` moves time forward.
    Callbacks fire in due-time order, ties in scheduling order, and each
    one sees ``now()`` equal to its own due time. Callbacks may schedule
    further calls; those fire in the same advance if they fall due.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[_ManualHandle] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualHandle(self._now + max(0.0, delay), next(self._seq), callback)
        heapq.heappush(self._queue, handle)
        return handle

    def pending(self) -> int:
        """Number of scheduled calls that have not fired or been cancelled."""
        return sum(1 for h in self._queue if not h.cancelled)

    def next_due(self) -> Optional[float]:
        """Due time of the earliest live call, or None."""
        live = [h.when for h in self._queue if not h.cancelled]
        return min(live) if live else None

    def advance(self, seconds: float) -> int:
        """Move time forward by ``seconds``; returns the number of callbacks run."""
        return self.advance_to(self._now + seconds)

    def advance_to(self, when: float) -> int:
        """
        Move time forward to ``when``, firing everything due on the way.

        Returns:
            Number of callbacks run
        """
        fired = 0
        while self._queue and self._queue[0].when <= when:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, handle.when)
            handle.cancel()
            handle.callback()
            fired += 1
        self._now = max(self._now, when)
        return fired

    def run_all(self) -> int:
        """Fire everything still scheduled, advancing time as needed."""
        fired = 0
        while True:
            due = self.next_due()
            if due is None:
                return fired
            fired += self.advance_to(due)


# ----------------------------------------------------------------------
# asyncio
# ----------------------------------------------------------------------


class _AsyncioHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return _AsyncioHandle(self.loop.call_later(max(0.0, delay), callback))


# ----------------------------------------------------------------------
# threading
# ----------------------------------------------------------------------


class _ThreadHandle(TimerHandle):
    def __init__(self, timer: threading.Timer):
        self._timer = timer
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ThreadingScheduler(Scheduler):
    """Scheduler that runs each callback on its own daemon timer thread.

    Callbacks run off the caller's thread, so whatever they touch must be
    locked; the arbiter and progression tracker both are.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(max(0.0, delay), callback)
        timer.daemon = True
        timer.start()
        return _ThreadHandle(timer)
