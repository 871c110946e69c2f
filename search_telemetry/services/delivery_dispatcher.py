"""Delivery dispatcher - drains the event buffer to the sink with retry and backoff."""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from search_telemetry.core.errors import FlushTimeoutError, SinkError
from search_telemetry.core.schemas import DeliveryReport, TelemetryEvent
from search_telemetry.services.dead_letter import DeadLetterRecord
from search_telemetry.services.event_buffer import EventBuffer
from search_telemetry.sinks.base import EventSink
from search_telemetry.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class DispatcherMetrics:
    """Delivery counters since the dispatcher was created."""
    total_delivered: int = 0
    total_batches: int = 0
    total_failed_attempts: int = 0
    total_dead_lettered: int = 0
    last_success_at: Optional[datetime] = None
    last_error: Optional[str] = None
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_delivered": self.total_delivered,
            "total_batches": self.total_batches,
            "total_failed_attempts": self.total_failed_attempts,
            "total_dead_lettered": self.total_dead_lettered,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "last_error": self.last_error,
            "uptime_seconds": f"{self.uptime_seconds:.1f}s",
        }


class DeliveryDispatcher:
    """
    Forwards buffered events to an external sink.

    Transient failures put the batch back at the head of the buffer and
    close a backoff gate; permanent failures (or exhausted retries) move the
    batch to the dead-letter record. Deliveries are serialized by a single
    lock, so periodic ticks and flushes never reorder events.
    """

    JOB_ID = "deliver_telemetry"

    def __init__(
        self,
        buffer: EventBuffer,
        sink: EventSink,
        retry_policy: Optional[RetryPolicy] = None,
        dead_letters: Optional[DeadLetterRecord] = None,
        batch_size: int = 50,
        interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            buffer: Source of events
            sink: Destination implementing ``async send(events)``
            retry_policy: Backoff and retry limits
            dead_letters: Where permanently failed batches go
            batch_size: Max events per ``send`` call
            interval: Seconds between background delivery passes
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self.buffer = buffer
        self.sink = sink
        self.retry_policy = retry_policy or RetryPolicy()
        self.dead_letters = dead_letters if dead_letters is not None else DeadLetterRecord()
        self.batch_size = batch_size
        self.interval = interval
        self.metrics = DispatcherMetrics()

        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._attempts: Dict[UUID, int] = {}
        self._consecutive_failures = 0
        self._next_attempt_at = 0.0
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def start(self) -> None:
        """Start the recurring background delivery task."""
        if self._is_running:
            logger.warning("Dispatcher already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._dispatch_task,
            trigger=IntervalTrigger(seconds=self.interval),
            id=self.JOB_ID,
            name="Deliver buffered telemetry",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        self._is_running = True
        logger.info(f"🚀 Delivery dispatcher started (every {self.interval}s, batch={self.batch_size})")

    async def stop(self) -> None:
        """Stop the background task. Buffered events are left in place."""
        if self._scheduler is None or not self._is_running:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._is_running = False
        logger.info("🛑 Delivery dispatcher stopped")

    async def _dispatch_task(self) -> None:
        """Background task: deliver until the buffer is empty or a batch fails."""
        try:
            report = await self.dispatch_pending()
            if report.delivered or report.dead_lettered:
                logger.info(
                    f"📤 Delivered {report.delivered} events "
                    f"({report.dead_lettered} dead-lettered, {report.remaining} remaining)"
                )
        except Exception as e:
            logger.error(f"Telemetry delivery task error: {e}")

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def backoff_remaining(self) -> float:
        """Seconds until the next delivery attempt is allowed."""
        return max(0.0, self._next_attempt_at - self._clock())

    async def dispatch_once(self) -> DeliveryReport:
        """Send at most one batch, respecting the backoff gate."""
        report = DeliveryReport()
        if self.backoff_remaining() <= 0:
            async with self._lock:
                batch = self.buffer.drain(self.batch_size)
                if batch:
                    await self._deliver(batch, report)
        report.remaining = len(self.buffer)
        return report

    async def dispatch_pending(self) -> DeliveryReport:
        """Send batches until the buffer is empty or a transient failure closes the gate."""
        report = DeliveryReport()
        async with self._lock:
            while self.backoff_remaining() <= 0:
                batch = self.buffer.drain(self.batch_size)
                if not batch:
                    break
                if not await self._deliver(batch, report):
                    break
        report.remaining = len(self.buffer)
        return report

    async def flush(self, timeout: Optional[float] = None) -> DeliveryReport:
        """
        Deliver everything buffered, waiting out backoff between retries.

        Waits for a background delivery that is already in progress, so a
        batch it puts back is delivered here too. Raises FlushTimeoutError
        (carrying the partial report) when ``timeout`` elapses; the in-flight
        batch goes back to the buffer.
        """
        report = DeliveryReport()
        # An in-flight batch may still come back to the buffer
        if not self.buffer and not self._lock.locked():
            return report

        try:
            await asyncio.wait_for(self._flush_all(report), timeout)
        except asyncio.TimeoutError:
            report.timed_out = True
            report.remaining = len(self.buffer)
            logger.warning(
                f"⏱️ Flush timed out after {timeout}s: {report.delivered} delivered, "
                f"{report.remaining} still buffered"
            )
            raise FlushTimeoutError(timeout, report)

        report.remaining = len(self.buffer)
        return report

    async def _flush_all(self, report: DeliveryReport) -> None:
        async with self._lock:
            while True:
                batch = self.buffer.drain(self.batch_size)
                if not batch:
                    return
                if not await self._deliver(batch, report):
                    await self._sleep(self.backoff_remaining())

    async def _deliver(self, batch: List[TelemetryEvent], report: DeliveryReport) -> bool:
        """
        Send one batch. Returns True when the batch left the buffer for good
        (delivered or dead-lettered), False when it was re-queued for retry.
        """
        try:
            await self.sink.send(batch)
        except asyncio.CancelledError:
            self.buffer.requeue_front(batch)
            raise
        except SinkError as e:
            error = e
        except Exception as e:
            logger.error(f"Unexpected sink error ({type(e).__name__}): {e}")
            error = SinkError.transient(f"{type(e).__name__}: {e}")
        else:
            self._on_success(batch, report)
            return True

        return self._on_failure(batch, error, report)

    def _on_success(self, batch: List[TelemetryEvent], report: DeliveryReport) -> None:
        for event in batch:
            self._attempts.pop(event.event_id, None)
            report.delivered_event_ids.append(event.event_id)
        report.delivered += len(batch)
        report.batches += 1

        self._consecutive_failures = 0
        self._next_attempt_at = 0.0
        self.metrics.total_delivered += len(batch)
        self.metrics.total_batches += 1
        self.metrics.last_success_at = datetime.now(timezone.utc)

    def _on_failure(self, batch: List[TelemetryEvent], error: SinkError, report: DeliveryReport) -> bool:
        attempts = max(self._attempts.get(event.event_id, 0) for event in batch) + 1
        self.metrics.total_failed_attempts += 1
        self.metrics.last_error = str(error)

        if self.retry_policy.should_retry(attempts, error):
            for event in batch:
                self._attempts[event.event_id] = attempts
            evicted = self.buffer.requeue_front(batch)
            if evicted:
                self._prune_attempts()

            delay = self.retry_policy.get_delay(self._consecutive_failures)
            self._consecutive_failures += 1
            self._next_attempt_at = self._clock() + delay
            report.retries += 1
            logger.warning(
                f"⚠️ Sink send failed (retry {attempts}/{self.retry_policy.max_retries}): "
                f"{error}; retrying {len(batch)} events in {delay:.2f}s"
            )
            return False

        reason = str(error)
        if error.is_transient:
            reason = f"retries exhausted: {reason}"
        for event in batch:
            self._attempts.pop(event.event_id, None)
        self.dead_letters.add(batch, reason, attempts)
        report.dead_lettered += len(batch)
        self.metrics.total_dead_lettered += len(batch)
        return True

    def _prune_attempts(self) -> None:
        buffered = {event.event_id for event in self.buffer.snapshot()}
        for event_id in list(self._attempts):
            if event_id not in buffered:
                del self._attempts[event_id]
