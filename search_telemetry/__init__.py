"""Search/click correlation and event delivery for search telemetry."""

from search_telemetry.core import (
    TelemetryConfig,
    TelemetryError,
    ValidationError,
    BufferFullError,
    SinkError,
    SinkErrorKind,
    FlushTimeoutError,
    OrphanClickWarning,
    Result,
    SearchEvent,
    ClickEvent,
    DeliveryReport,
)
from search_telemetry.services import (
    EventBuffer,
    DeliveryDispatcher,
    TelemetryClient,
)
from search_telemetry.utils import (
    CorrelationId,
    CorrelationIdProvider,
    EventSchemaValidator,
    RetryPolicy,
    SEARCH_ID_HEADER,
    SEARCH_ID_REQUEST_HEADERS,
)

__version__ = "1.0.0"

__all__ = [
    "TelemetryConfig",
    "TelemetryError",
    "ValidationError",
    "BufferFullError",
    "SinkError",
    "SinkErrorKind",
    "FlushTimeoutError",
    "OrphanClickWarning",
    "Result",
    "SearchEvent",
    "ClickEvent",
    "DeliveryReport",
    "EventBuffer",
    "DeliveryDispatcher",
    "TelemetryClient",
    "CorrelationId",
    "CorrelationIdProvider",
    "EventSchemaValidator",
    "RetryPolicy",
    "SEARCH_ID_HEADER",
    "SEARCH_ID_REQUEST_HEADERS",
]
