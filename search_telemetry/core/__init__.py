"""Core module - Configuration, schemas, errors and result types."""

from search_telemetry.core.config import TelemetryConfig
from search_telemetry.core.errors import (
    TelemetryError,
    ValidationError,
    BufferFullError,
    SinkError,
    SinkErrorKind,
    FlushTimeoutError,
    OrphanClickWarning,
)
from search_telemetry.core.results import Result
from search_telemetry.core.schemas import (
    SearchEvent,
    ClickEvent,
    TelemetryEvent,
    DeliveryReport,
    DeadLetterEntry,
    TelemetryStats,
)

__all__ = [
    # Config
    "TelemetryConfig",
    # Errors
    "TelemetryError",
    "ValidationError",
    "BufferFullError",
    "SinkError",
    "SinkErrorKind",
    "FlushTimeoutError",
    "OrphanClickWarning",
    # Results
    "Result",
    # Schemas
    "SearchEvent",
    "ClickEvent",
    "TelemetryEvent",
    "DeliveryReport",
    "DeadLetterEntry",
    "TelemetryStats",
]
