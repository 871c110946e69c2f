"""Telemetry client - public facade for logging search and click events."""
import logging
import threading
from collections import OrderedDict
from typing import Any, Mapping, Optional
from uuid import UUID

from search_telemetry.core.config import TelemetryConfig
from search_telemetry.core.errors import FlushTimeoutError, OrphanClickWarning
from search_telemetry.core.results import Result
from search_telemetry.core.schemas import DeliveryReport, TelemetryEvent, TelemetryStats
from search_telemetry.services.dead_letter import DeadLetterRecord
from search_telemetry.services.delivery_dispatcher import DeliveryDispatcher
from search_telemetry.services.event_buffer import EventBuffer
from search_telemetry.sinks.base import EventSink
from search_telemetry.utils.correlation import CorrelationId, CorrelationIdProvider
from search_telemetry.utils.event_validator import EventSchemaValidator
from search_telemetry.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

# Sentinel: use config.flush_timeout
_DEFAULT: Any = object()


class TelemetryClient:
    """
    Validates events, buffers them, and hands them to the dispatcher.

    Construct one per application at its composition root and pass it to
    whatever handles searches and clicks. ``log_*`` calls never block and
    never raise for bad input; they return a ``Result``.

    Example:
        client = TelemetryClient(HttpEventSink(url), service_name="catalog")
        await client.start()
        search_id = client.obtain_search_id(resp.headers.get(SEARCH_ID_HEADER))
        client.log_search_event(searchId=search_id, indexName="products",
                                queryTerms="shoes", resultCount=5)
        client.log_click_event(searchId=search_id, docId="doc42", position=2)
        await client.stop()
    """

    def __init__(
        self,
        sink: EventSink,
        config: Optional[TelemetryConfig] = None,
        service_name: Optional[str] = None,
        correlation_provider: Optional[CorrelationIdProvider] = None,
        validator: Optional[EventSchemaValidator] = None,
    ):
        """
        Args:
            sink: External destination for events
            config: Buffer, retry and delivery settings
            service_name: Default ``serviceName`` for events that omit it
            correlation_provider: Source of search ids
            validator: Event schema validator
        """
        self.config = config or TelemetryConfig()
        self.service_name = service_name
        self.correlation = correlation_provider or CorrelationIdProvider()
        self.validator = validator or EventSchemaValidator()

        self.buffer = EventBuffer(self.config.buffer_capacity, self.config.overflow_policy)
        self.dead_letters = DeadLetterRecord(self.config.dead_letter_alert_threshold)
        self.dispatcher = DeliveryDispatcher(
            self.buffer,
            sink,
            retry_policy=RetryPolicy(
                max_retries=self.config.max_retries,
                base_delay=self.config.retry_base_delay,
                max_delay=self.config.retry_max_delay,
                jitter=self.config.retry_jitter,
            ),
            dead_letters=self.dead_letters,
            batch_size=self.config.batch_size,
            interval=self.config.dispatch_interval,
        )

        self._state_lock = threading.Lock()
        self._recent_searches: "OrderedDict[UUID, None]" = OrderedDict()
        self._orphan_clicks = 0
        self._validation_failures = 0

    # ------------------------------------------------------------------
    # Correlation
    # ------------------------------------------------------------------

    def obtain_search_id(self, search_response_header: Optional[str]) -> CorrelationId:
        """Adopt the backend's search id, or synthesize one."""
        return self.correlation.obtain(search_response_header)

    def obtain_search_id_from_headers(self, headers: Optional[Mapping[str, str]]) -> CorrelationId:
        return self.correlation.obtain_from_headers(headers)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def log_search_event(self, **fields: Any) -> Result[TelemetryEvent]:
        """Validate and enqueue a search event."""
        return self._log("search", fields)

    def log_click_event(self, **fields: Any) -> Result[TelemetryEvent]:
        """Validate and enqueue a click event. Unknown search ids are flagged, not rejected."""
        return self._log("click", fields)

    def log_event(self, event_type: str, fields: Mapping[str, Any]) -> Result[TelemetryEvent]:
        """Log an event whose type is only known at runtime (e.g. from an HTTP payload)."""
        return self._log(event_type, dict(fields))

    def _log(self, event_type: str, fields: dict) -> Result[TelemetryEvent]:
        if self.service_name and "serviceName" not in fields and "service_name" not in fields:
            fields["serviceName"] = self.service_name

        key = "search_id" if "search_id" in fields else "searchId"
        search_id = fields.get(key)
        if isinstance(search_id, CorrelationId):
            if search_id.synthesized and self.config.require_backend_correlation:
                logger.debug(f"Skipped {event_type} event with locally synthesized searchId")
                return Result.success(skipped=True)
            fields[key] = search_id.value

        result = self.validator.validate(event_type, fields)
        if not result.ok:
            with self._state_lock:
                self._validation_failures += 1
            logger.warning(f"⚠️ Dropped invalid {event_type} event: {result.error}")
            return result

        event = result.value
        warnings = []
        if event_type == "search":
            self._remember_search(event.search_id)
        elif not self._is_known_search(event.search_id):
            warning = OrphanClickWarning(str(event.search_id))
            with self._state_lock:
                self._orphan_clicks += 1
            logger.info(f"🔗 {warning}")
            warnings.append(warning)

        enqueued = self.buffer.enqueue(event)
        if not enqueued.ok:
            logger.warning(f"⚠️ Dropped {event_type} event: {enqueued.error}")
            return Result.failure(enqueued.error)
        return Result.success(event, warnings=warnings)

    def _remember_search(self, search_id: UUID) -> None:
        limit = self.config.recent_search_history
        if limit == 0:
            return
        with self._state_lock:
            self._recent_searches[search_id] = None
            self._recent_searches.move_to_end(search_id)
            while len(self._recent_searches) > limit:
                self._recent_searches.popitem(last=False)

    def _is_known_search(self, search_id: UUID) -> bool:
        if self.config.recent_search_history == 0:
            # History disabled; orphan detection off
            return True
        with self._state_lock:
            return search_id in self._recent_searches

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def flush(self, timeout: Optional[float] = _DEFAULT) -> Result[DeliveryReport]:
        """
        Deliver everything buffered.

        ``timeout`` defaults to ``config.flush_timeout``; ``None`` waits
        without a limit.
        """
        if timeout is _DEFAULT:
            timeout = self.config.flush_timeout
        try:
            report = await self.dispatcher.flush(timeout)
        except FlushTimeoutError as e:
            return Result.failure(e)
        return Result.success(report)

    async def start(self) -> None:
        """Start background delivery."""
        await self.dispatcher.start()

    async def stop(self) -> Result[DeliveryReport]:
        """Stop background delivery and flush what is left."""
        await self.dispatcher.stop()
        result = await self.flush()
        if result.ok:
            logger.info(f"✅ Telemetry flushed on shutdown: {result.value.delivered} events delivered")
        else:
            logger.warning(f"⚠️ Telemetry shutdown flush incomplete: {result.error}")
        return result

    async def __aenter__(self) -> "TelemetryClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def stats(self) -> TelemetryStats:
        with self._state_lock:
            orphan_clicks = self._orphan_clicks
            validation_failures = self._validation_failures
        return TelemetryStats(
            buffered=len(self.buffer),
            dropped=self.buffer.dropped_count,
            delivered=self.dispatcher.metrics.total_delivered,
            dead_lettered=self.dead_letters.event_count,
            orphan_clicks=orphan_clicks,
            validation_failures=validation_failures,
            dispatcher_running=self.dispatcher.is_running,
        )
