"""Dead-letter record for batches that failed delivery permanently."""
import logging
from typing import List, Sequence

from search_telemetry.core.schemas import DeadLetterEntry, TelemetryEvent

logger = logging.getLogger(__name__)


class DeadLetterRecord:
    """Keeps permanently failed batches and escalates when they pile up."""

    def __init__(self, alert_threshold: int = 100):
        self.alert_threshold = alert_threshold
        self._entries: List[DeadLetterEntry] = []
        self._event_count = 0
        self._alerted = False

    def add(self, events: Sequence[TelemetryEvent], reason: str, attempts: int) -> DeadLetterEntry:
        entry = DeadLetterEntry(events=list(events), reason=reason, attempts=attempts)
        self._entries.append(entry)
        self._event_count += len(entry.events)
        logger.error(
            f"❌ Dead-lettered {len(entry.events)} events after {attempts} attempts: {reason}"
        )

        if not self._alerted and self._event_count > self.alert_threshold:
            logger.critical(
                f"🚨 Dead-letter record holds {self._event_count} events "
                f"(threshold {self.alert_threshold}); telemetry sink needs attention"
            )
            self._alerted = True
        return entry

    @property
    def entries(self) -> List[DeadLetterEntry]:
        return list(self._entries)

    @property
    def event_count(self) -> int:
        return self._event_count

    def clear(self) -> List[DeadLetterEntry]:
        """Remove and return all entries (e.g. for manual replay)."""
        entries, self._entries = self._entries, []
        self._event_count = 0
        self._alerted = False
        return entries

    def __len__(self) -> int:
        return len(self._entries)
