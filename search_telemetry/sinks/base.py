"""Contract for external event sinks."""

from typing import Protocol, Sequence, runtime_checkable

from search_telemetry.core.schemas import TelemetryEvent


@runtime_checkable
class EventSink(Protocol):
    """Destination for validated telemetry events."""

    async def send(self, events: Sequence[TelemetryEvent]) -> None:
        """Deliver a batch, raising SinkError (transient or permanent) on failure."""
