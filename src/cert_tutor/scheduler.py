"""Virtual-time scheduler for sessions that are not driven by an asyncio loop.

A session only needs ``time()``, ``call_soon()`` and ``call_later()`` from its
scheduler, returning handles with ``cancel()``. A running asyncio event loop
provides exactly that. ``ManualScheduler`` provides the same interface with a
clock that only moves when ``advance()`` is called, which makes timers
deterministic in tests and lets a blocking CLI pump them between prompts.
"""
import heapq
import itertools
import logging

logger = logging.getLogger(__name__)


class ScheduledCall:
    def __init__(self, when: float, callback, args: tuple):
        self.when = when
        self._callback = callback
        self._args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self) -> None:
        try:
            self._callback(*self._args)
        except Exception:
            logger.exception("Scheduled callback %r failed", self._callback)


class ManualScheduler:
    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback, *args) -> ScheduledCall:
        call = ScheduledCall(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._queue, (call.when, next(self._seq), call))
        return call

    def call_soon(self, callback, *args) -> ScheduledCall:
        return self.call_later(0, callback, *args)

    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled())

    def run_pending(self) -> int:
        """Run everything due at the current time. Returns the number run."""
        return self.advance(0)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running callbacks in due order."""
        target = self._now + max(0.0, seconds)
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, call = heapq.heappop(self._queue)
            if call.cancelled():
                continue
            self._now = max(self._now, when)
            call._run()
            ran += 1
        self._now = target
        return ran
