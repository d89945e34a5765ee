"""
Scan scheduling: a cooperative timer queue and the debounced scan trigger.

The Playwright sync API is single-threaded, so nothing here uses threads.
Timers are plain (deadline, callback) entries that the monitor loop fires
by calling Scheduler.run_due() between page.wait_for_timeout() pumps.
"""

import heapq
import itertools
import logging
import time
from typing import Callable

logger = logging.getLogger("lazada_autoproc")


class TimerHandle:
    __slots__ = ("deadline", "callback", "cancelled")

    def __init__(self, deadline: float, callback: Callable[[], None]):
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False

    def __repr__(self):
        state = "cancelled" if self.cancelled else "armed"
        return f"TimerHandle({self.deadline:.3f}, {state})"


class Scheduler:
    """
    Millisecond timers on a monotonic clock.

    Args:
        clock: Callable returning seconds; defaults to time.monotonic.
               Tests pass a fake clock they can advance by hand.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._heap: list = []
        self._seq = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self._clock() + delay_ms / 1000.0, callback)
        heapq.heappush(self._heap, (handle.deadline, next(self._seq), handle))
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        handle.cancelled = True

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h in self._heap if not h.cancelled)

    def run_due(self) -> int:
        """Fire every armed timer whose deadline has passed. Returns the count fired."""
        now = self._clock()
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            fired += 1
            try:
                handle.callback()
            except Exception:
                logger.exception("Scheduled callback failed")
        return fired

    def clear(self) -> None:
        for _, _, handle in self._heap:
            handle.cancelled = True
        self._heap.clear()


class ScanTrigger:
    """
    Trailing-edge debounce in front of Scanner.scan().

    Every request_scan() call restarts the quiet period, so a burst of any
    length produces exactly one scan, delay_ms after the last call.
    """

    def __init__(self, scheduler: Scheduler, scan: Callable[[], object], delay_ms: int = 100):
        self._scheduler = scheduler
        self._scan = scan
        self._delay_ms = delay_ms
        self._pending: TimerHandle | None = None
        self._coalesced = 0

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def request_scan(self) -> None:
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._coalesced += 1
        self._pending = self._scheduler.call_later(self._delay_ms, self._fire)

    def cancel(self) -> None:
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None
        self._coalesced = 0

    def _fire(self) -> None:
        self._pending = None
        if self._coalesced:
            logger.debug(f"Scan trigger coalesced {self._coalesced + 1} requests")
        self._coalesced = 0
        self._scan()
