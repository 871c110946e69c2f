"""Bounded in-memory queue of validated events pending delivery."""
import logging
import threading
from collections import deque
from typing import Deque, List, Sequence

from search_telemetry.core.errors import BufferFullError
from search_telemetry.core.results import Result
from search_telemetry.core.schemas import TelemetryEvent

logger = logging.getLogger(__name__)


class EventBuffer:
    """
    FIFO buffer with bounded capacity.

    On overflow the oldest event is evicted to admit the newest
    (``drop_oldest``), or the new event is refused with ``BufferFullError``
    (``reject``). All mutation happens under one lock, so producers on
    other threads or coroutines never observe a partial drain.
    """

    DROP_OLDEST = "drop_oldest"
    REJECT = "reject"

    # Log overflow every N drops instead of per event
    LOG_INTERVAL = 100

    def __init__(self, capacity: int = 500, overflow_policy: str = DROP_OLDEST):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if overflow_policy not in (self.DROP_OLDEST, self.REJECT):
            raise ValueError(f"Unknown overflow policy: {overflow_policy!r}")

        self.capacity = capacity
        self.overflow_policy = overflow_policy
        self._events: Deque[TelemetryEvent] = deque()
        self._lock = threading.Lock()
        self._dropped_count = 0
        self._last_logged_drop_count = 0

    def enqueue(self, event: TelemetryEvent) -> Result[None]:
        """Append an event, applying the overflow policy when full."""
        with self._lock:
            if len(self._events) >= self.capacity:
                if self.overflow_policy == self.REJECT:
                    return Result.failure(BufferFullError(self.capacity))
                self._events.popleft()
                self._record_drops(1)
            self._events.append(event)
        return Result.success()

    def drain(self, max_count: int) -> List[TelemetryEvent]:
        """Remove and return up to ``max_count`` oldest events, oldest first."""
        if max_count <= 0:
            return []
        with self._lock:
            count = min(max_count, len(self._events))
            return [self._events.popleft() for _ in range(count)]

    def requeue_front(self, batch: Sequence[TelemetryEvent]) -> int:
        """
        Put a batch back at the head of the queue, preserving its order.

        Used when a delivery attempt fails transiently. If the buffer filled
        up in the meantime, the oldest entries are evicted until it fits.
        Returns the number of events evicted.
        """
        if not batch:
            return 0
        with self._lock:
            self._events.extendleft(reversed(batch))
            overflow = len(self._events) - self.capacity
            for _ in range(max(0, overflow)):
                self._events.popleft()
            if overflow > 0:
                self._record_drops(overflow)
            return max(0, overflow)

    def snapshot(self) -> List[TelemetryEvent]:
        """Copy of buffered events, oldest first. Does not mutate."""
        with self._lock:
            return list(self._events)

    def _record_drops(self, count: int) -> None:
        # Caller holds the lock
        self._dropped_count += count
        if self._dropped_count - self._last_logged_drop_count >= self.LOG_INTERVAL:
            logger.warning(
                f"⚠️ Event buffer overflow: {self._dropped_count - self._last_logged_drop_count} "
                f"oldest events dropped (total={self._dropped_count}, capacity={self.capacity})"
            )
            self._last_logged_drop_count = self._dropped_count

    @property
    def dropped_count(self) -> int:
        """Events evicted by the overflow policy."""
        return self._dropped_count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __bool__(self) -> bool:
        return len(self) > 0
