"""
Discrete-event clock for running GCCP nodes without a network simulator.

Events are kept in a heap ordered by (time, insertion order), so callbacks
scheduled for the same instant fire in the order they were scheduled.
Cancellation is lazy: cancelled tokens are skipped when popped.
"""

import heapq
import itertools
import logging
from typing import Callable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)


class SimClock:
    """
    Simulation clock implementing schedule_after / cancel / now.

    Usage:
        clock = SimClock()
        token = clock.schedule_after(1.0, callback)
        clock.run_until(10.0)
    """

    def __init__(self, start_time: float = 0.0):
        self._now = float(start_time)
        self._queue: List[Tuple[float, int, Callable]] = []
        self._counter = itertools.count()
        self._cancelled: Set[int] = set()
        self.events_processed = 0

    def now(self) -> float:
        return self._now

    def schedule_after(self, delay: float, callback: Callable) -> int:
        """
        Schedule callback() to run delay seconds from now.

        Returns:
            Token usable with cancel()

        Raises:
            ValueError: negative delay
        """
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        token = next(self._counter)
        heapq.heappush(self._queue, (self._now + delay, token, callback))
        return token

    def cancel(self, token: int) -> None:
        """Cancel a pending callback. Unknown or already-fired tokens are ignored."""
        if any(entry[1] == token for entry in self._queue):
            self._cancelled.add(token)

    def pending(self) -> int:
        """Number of scheduled, not-cancelled callbacks."""
        return len(self._queue) - len(self._cancelled)

    def next_event_time(self) -> Optional[float]:
        self._discard_cancelled()
        return self._queue[0][0] if self._queue else None

    def step(self) -> bool:
        """
        Run the next pending callback.

        Returns:
            False if nothing was pending
        """
        self._discard_cancelled()
        if not self._queue:
            return False
        when, _, callback = heapq.heappop(self._queue)
        self._now = when
        self.events_processed += 1
        callback()
        return True

    def run_until(self, end_time: float) -> int:
        """
        Run every callback due at or before end_time, then advance to end_time.

        Returns:
            Number of callbacks run
        """
        processed = 0
        while True:
            next_time = self.next_event_time()
            if next_time is None or next_time > end_time:
                break
            self.step()
            processed += 1
        self._now = max(self._now, end_time)
        return processed

    def run(self, max_events: Optional[int] = None) -> int:
        """Run until the queue drains or max_events callbacks have run."""
        processed = 0
        while max_events is None or processed < max_events:
            if not self.step():
                break
            processed += 1
        return processed

    def _discard_cancelled(self):
        while self._queue and self._queue[0][1] in self._cancelled:
            _, token, _ = heapq.heappop(self._queue)
            self._cancelled.discard(token)
