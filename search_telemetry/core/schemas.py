"""Pydantic schemas for telemetry events and delivery reports."""

import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, StrictInt, StrictStr


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Events
# ============================================================================

class _TelemetryEventBase(BaseModel):
    """Fields shared by every event. Wire names are camelCase."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    service_name: StrictStr = Field(..., min_length=1, alias="serviceName")
    search_id: UUID = Field(..., alias="searchId")
    event_id: UUID = Field(default_factory=uuid.uuid4, alias="eventId")
    timestamp: AwareDatetime = Field(default_factory=_utcnow)

    def to_wire(self) -> dict:
        """JSON-safe dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)


class SearchEvent(_TelemetryEventBase):
    """One executed search request."""

    event_type: Literal["search"] = Field("search", alias="eventType")
    index_name: StrictStr = Field(..., alias="indexName")
    # Blank queries are meaningful data, not errors
    query_terms: StrictStr = Field(..., alias="queryTerms")
    result_count: StrictInt = Field(..., ge=0, alias="resultCount")
    scoring_profile: Optional[StrictStr] = Field(None, alias="scoringProfile")


class ClickEvent(_TelemetryEventBase):
    """User click on one result of a search."""

    event_type: Literal["click"] = Field("click", alias="eventType")
    doc_id: StrictStr = Field(..., min_length=1, alias="docId")
    position: StrictInt = Field(..., ge=0)


TelemetryEvent = Union[SearchEvent, ClickEvent]

EVENT_TYPES = {
    "search": SearchEvent,
    "click": ClickEvent,
}


# ============================================================================
# Delivery
# ============================================================================

class DeliveryReport(BaseModel):
    """Outcome of a flush (or a single dispatch pass)."""

    delivered: int = 0
    delivered_event_ids: List[UUID] = Field(default_factory=list)
    batches: int = 0
    retries: int = 0
    dead_lettered: int = 0
    remaining: int = 0
    timed_out: bool = False

    @property
    def is_empty(self) -> bool:
        return self.delivered == 0 and self.dead_lettered == 0 and self.batches == 0


class DeadLetterEntry(BaseModel):
    """Batch that failed permanently."""

    events: List[Union[SearchEvent, ClickEvent]]
    reason: str
    attempts: int
    failed_at: datetime = Field(default_factory=_utcnow)


# ============================================================================
# Stats
# ============================================================================

class TelemetryStats(BaseModel):
    """Snapshot of client state."""

    buffered: int
    dropped: int
    delivered: int
    dead_lettered: int
    orphan_clicks: int
    validation_failures: int
    dispatcher_running: bool
