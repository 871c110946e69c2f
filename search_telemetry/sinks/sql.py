"""SQL sink writing events to search_events / click_events tables."""
import logging
from typing import Sequence

from sqlalchemy.exc import DataError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from search_telemetry.core.errors import SinkError
from search_telemetry.core.schemas import ClickEvent, SearchEvent, TelemetryEvent
from search_telemetry.db.models import ClickEventRecord, SearchEventRecord

logger = logging.getLogger(__name__)


def _to_record(event: TelemetryEvent):
    if isinstance(event, SearchEvent):
        return SearchEventRecord(
            event_id=str(event.event_id),
            search_id=str(event.search_id),
            service_name=event.service_name,
            index_name=event.index_name,
            query_terms=event.query_terms,
            result_count=event.result_count,
            scoring_profile=event.scoring_profile,
            created_at=event.timestamp,
        )
    if isinstance(event, ClickEvent):
        return ClickEventRecord(
            event_id=str(event.event_id),
            search_id=str(event.search_id),
            service_name=event.service_name,
            doc_id=event.doc_id,
            rank_position=event.position,
            clicked_at=event.timestamp,
        )
    raise SinkError.permanent(f"Unsupported event type {type(event).__name__}")


class SqlEventSink:
    """Inserts each batch in a single transaction."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def send(self, events: Sequence[TelemetryEvent]) -> None:
        records = [_to_record(event) for event in events]

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add_all(records)
        except (IntegrityError, DataError) as e:
            raise SinkError.permanent(f"Database rejected batch: {e.orig}") from e
        except (OperationalError, InterfaceError) as e:
            raise SinkError.transient(f"Database unavailable: {e.orig}") from e
        except SQLAlchemyError as e:
            raise SinkError.transient(f"Database error: {e}") from e

        logger.debug(f"💾 Stored {len(records)} events")
