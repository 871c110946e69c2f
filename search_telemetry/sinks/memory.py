"""Local sinks: in-memory capture and log output."""
import json
import logging
from typing import List, Sequence

from search_telemetry.core.schemas import TelemetryEvent


class InMemorySink:
    """Keeps every delivered batch. Useful for tests and local development."""

    def __init__(self):
        self.batches: List[List[TelemetryEvent]] = []

    async def send(self, events: Sequence[TelemetryEvent]) -> None:
        self.batches.append(list(events))

    @property
    def events(self) -> List[TelemetryEvent]:
        return [event for batch in self.batches for event in batch]

    def clear(self) -> None:
        self.batches.clear()


class LoggingSink:
    """Writes each event as one JSON line to a logger."""

    def __init__(self, logger_name: str = "search_telemetry.events", level: int = logging.INFO):
        self._logger = logging.getLogger(logger_name)
        self._level = level

    async def send(self, events: Sequence[TelemetryEvent]) -> None:
        for event in events:
            self._logger.log(self._level, json.dumps(event.to_wire(), sort_keys=True))
