"""Database module - Tables backing the SQL sink."""

from search_telemetry.db.database import Base, create_session_factory, init_db, close_db
from search_telemetry.db.models import SearchEventRecord, ClickEventRecord

__all__ = [
    "Base",
    "create_session_factory",
    "init_db",
    "close_db",
    "SearchEventRecord",
    "ClickEventRecord",
]
