"""Error taxonomy for telemetry logging and delivery."""
from enum import Enum
from typing import Optional


class TelemetryError(Exception):
    """Base class for telemetry errors."""
    pass


class ValidationError(TelemetryError):
    """Malformed event. Logged and dropped, never enqueued."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason

    def to_dict(self) -> dict:
        return {"field": self.field, "reason": self.reason}


class BufferFullError(TelemetryError):
    """Raised only when the buffer rejects instead of dropping the oldest event."""

    def __init__(self, capacity: int):
        super().__init__(f"Event buffer is full (capacity={capacity})")
        self.capacity = capacity


class SinkErrorKind(Enum):
    """Whether a failed send should be retried."""
    TRANSIENT = "transient"  # timeouts, 5xx, dropped connections
    PERMANENT = "permanent"  # rejected payload, auth failure


class SinkError(TelemetryError):
    """Failure reported by an event sink."""

    def __init__(self, message: str, kind: SinkErrorKind = SinkErrorKind.TRANSIENT):
        super().__init__(message)
        self.kind = kind

    @property
    def is_transient(self) -> bool:
        return self.kind is SinkErrorKind.TRANSIENT

    @classmethod
    def transient(cls, message: str) -> "SinkError":
        return cls(message, SinkErrorKind.TRANSIENT)

    @classmethod
    def permanent(cls, message: str) -> "SinkError":
        return cls(message, SinkErrorKind.PERMANENT)


class FlushTimeoutError(TelemetryError, TimeoutError):
    """Flush did not finish in time. Carries the partial delivery report."""

    def __init__(self, timeout: Optional[float], report=None):
        super().__init__(f"Flush did not complete within {timeout}s")
        self.timeout = timeout
        self.report = report


class OrphanClickWarning(UserWarning):
    """Click references a search id with no recently logged search event."""

    def __init__(self, search_id: str):
        super().__init__(f"No recent search event for searchId={search_id}")
        self.search_id = search_id
