"""SQLAlchemy ORM models for delivered telemetry events."""
from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from search_telemetry.db.database import Base


class SearchEventRecord(Base):
    """One delivered search event."""
    __tablename__ = "search_events"

    event_id = Column(String(36), primary_key=True)
    search_id = Column(String(36), nullable=False, index=True)
    service_name = Column(String(255), nullable=False)
    index_name = Column(String(255), nullable=False)
    query_terms = Column(Text, nullable=False, default="")
    result_count = Column(Integer, nullable=False, default=0)
    scoring_profile = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        Index("idx_search_events_service_index", "service_name", "index_name"),
    )


class ClickEventRecord(Base):
    """One delivered click event. ``search_id`` is a soft reference."""
    __tablename__ = "click_events"

    event_id = Column(String(36), primary_key=True)
    search_id = Column(String(36), nullable=False, index=True)
    service_name = Column(String(255), nullable=False)
    doc_id = Column(String(1024), nullable=False)
    rank_position = Column(Integer, nullable=False)
    clicked_at = Column(DateTime(timezone=True), nullable=False, index=True)
