"""
Timer Queue
Scheduled callbacks for the single-threaded dashboard loop.

Nothing runs on its own: the loop calls run_due() every tick and due
callbacks execute in deadline order on the loop thread.
"""

import heapq
import itertools
import logging
import time
from typing import Any, Callable, List, Tuple

logger = logging.getLogger(__name__)


class Timer:
    """Handle for a scheduled callback"""

    def __init__(self, deadline: float, callback: Callable, args: Tuple[Any, ...]):
        self.deadline = deadline
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class TimerQueue:
    """
    Deadline-ordered callback queue.

    Args:
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._heap: List[Tuple[float, int, Timer]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable, *args) -> Timer:
        timer = Timer(self.clock() + delay, callback, args)
        heapq.heappush(self._heap, (timer.deadline, next(self._counter), timer))
        return timer

    def run_due(self) -> int:
        """
        Run every active timer whose deadline has passed.

        Returns:
            Number of callbacks executed
        """
        now = self.clock()
        executed = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, timer = heapq.heappop(self._heap)
            if timer.cancelled:
                continue
            timer.fired = True
            timer.callback(*timer.args)
            executed += 1
        return executed

    def pending(self) -> int:
        return sum(1 for _, _, t in self._heap if t.active)
