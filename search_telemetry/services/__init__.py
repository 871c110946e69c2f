"""Services module - Buffering, delivery and the client facade."""

from search_telemetry.services.event_buffer import EventBuffer
from search_telemetry.services.dead_letter import DeadLetterRecord
from search_telemetry.services.delivery_dispatcher import DeliveryDispatcher, DispatcherMetrics
from search_telemetry.services.telemetry_client import TelemetryClient

__all__ = [
    "EventBuffer",
    "DeadLetterRecord",
    "DeliveryDispatcher",
    "DispatcherMetrics",
    "TelemetryClient",
]
