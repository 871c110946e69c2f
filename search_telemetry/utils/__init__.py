"""Utils module - Correlation, validation and retry helpers."""

from search_telemetry.utils.correlation import (
    CorrelationId,
    CorrelationIdProvider,
    SEARCH_ID_HEADER,
    SEARCH_ID_REQUEST_HEADERS,
)
from search_telemetry.utils.event_validator import EventSchemaValidator
from search_telemetry.utils.retry import RetryPolicy

__all__ = [
    "CorrelationId",
    "CorrelationIdProvider",
    "SEARCH_ID_HEADER",
    "SEARCH_ID_REQUEST_HEADERS",
    "EventSchemaValidator",
    "RetryPolicy",
]
