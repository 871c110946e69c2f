"""End-to-end tests for the telemetry client facade."""
import uuid

import pytest

from search_telemetry.core.config import TelemetryConfig
from search_telemetry.core.errors import BufferFullError, FlushTimeoutError, OrphanClickWarning
from search_telemetry.core.schemas import ClickEvent, SearchEvent
from search_telemetry.services.telemetry_client import TelemetryClient
from search_telemetry.tests.conftest import SEARCH_ID, FlakySink, SlowSink
from search_telemetry.utils.correlation import CorrelationId


@pytest.mark.asyncio
class TestTelemetryClientScenarios:
    """Search, click, flush."""

    async def test_search_then_click_delivered_in_order(self, client, memory_sink):
        """Both events reach the sink in the order they were logged."""
        search = client.log_search_event(
            serviceName="svc",
            searchId=SEARCH_ID,
            indexName="idx",
            queryTerms="shoes",
            resultCount=5,
            scoringProfile=None,
        )
        click = client.log_click_event(
            serviceName="svc",
            searchId=SEARCH_ID,
            docId="doc42",
            position=2,
        )
        assert search.ok and click.ok
        assert click.warnings == []

        result = await client.flush()

        assert result.ok
        assert result.value.delivered == 2
        delivered = memory_sink.events
        assert isinstance(delivered[0], SearchEvent)
        assert isinstance(delivered[1], ClickEvent)
        assert delivered[0].query_terms == "shoes"
        assert delivered[1].doc_id == "doc42"
        assert str(delivered[0].search_id) == str(delivered[1].search_id) == SEARCH_ID

    async def test_blank_query_with_zero_results_is_delivered(self, client, memory_sink):
        result = client.log_search_event(
            serviceName="svc", searchId=SEARCH_ID, indexName="idx", queryTerms="", resultCount=0,
        )
        assert result.ok

        await client.flush()

        assert memory_sink.events[0].query_terms == ""
        assert memory_sink.events[0].result_count == 0

    async def test_invalid_click_is_never_enqueued(self, client):
        before = len(client.buffer)

        result = client.log_click_event(serviceName="svc", searchId="not-a-uuid", docId="doc42", position=2)

        assert not result.ok
        assert result.error.field == "searchId"
        assert len(client.buffer) == before
        assert client.stats().validation_failures == 1

    async def test_duplicate_event_ids_cannot_be_injected(self, client, memory_sink):
        """Reusing an eventId is refused, so one bad click cannot sink a batch."""
        event_id = str(uuid.uuid4())
        client.log_search_event(searchId=SEARCH_ID, indexName="idx", queryTerms="q", resultCount=1)
        first = client.log_click_event(searchId=SEARCH_ID, docId="dup", position=0, eventId=event_id)
        good = client.log_click_event(searchId=SEARCH_ID, docId="good", position=1)

        assert first.error.field == "eventId"
        assert good.ok

        result = await client.flush()

        assert result.value.delivered == 2
        assert result.value.dead_lettered == 0
        assert [e.doc_id for e in memory_sink.events if isinstance(e, ClickEvent)] == ["good"]

    async def test_flush_empty_client(self, client, memory_sink):
        result = await client.flush()

        assert result.ok
        assert result.value.is_empty
        assert memory_sink.batches == []

    async def test_flush_without_time_limit(self, client, memory_sink):
        client.log_search_event(searchId=SEARCH_ID, indexName="idx", queryTerms="q", resultCount=1)

        result = await client.flush(timeout=None)

        assert result.ok
        assert len(memory_sink.events) == 1

    async def test_flush_timeout_keeps_events(self, telemetry_config):
        client = TelemetryClient(SlowSink(delay=10.0), telemetry_config, service_name="svc")
        client.log_search_event(searchId=SEARCH_ID, indexName="idx", queryTerms="q", resultCount=1)

        result = await client.flush(timeout=0.05)

        assert not result.ok
        assert isinstance(result.error, FlushTimeoutError)
        assert isinstance(result.error, TimeoutError)
        assert result.error.report.timed_out
        assert len(client.buffer) == 1

    async def test_transient_sink_failures_are_retried(self, telemetry_config):
        sink = FlakySink(failures=2)
        client = TelemetryClient(sink, telemetry_config, service_name="svc")
        client.log_search_event(searchId=SEARCH_ID, indexName="idx", queryTerms="q", resultCount=1)

        result = await client.flush()

        assert result.value.delivered == 1
        assert len(sink.events) == 1


@pytest.mark.asyncio
class TestTelemetryClientCorrelation:
    """Search id handling and orphan detection."""

    async def test_orphan_click_is_flagged_not_rejected(self, client):
        result = client.log_click_event(searchId=str(uuid.uuid4()), docId="doc1", position=0)

        assert result.ok
        assert len(result.warnings) == 1
        assert isinstance(result.warnings[0], OrphanClickWarning)
        assert len(client.buffer) == 1
        assert client.stats().orphan_clicks == 1

    async def test_recent_history_is_bounded(self, memory_sink, telemetry_config):
        telemetry_config.recent_search_history = 1
        client = TelemetryClient(memory_sink, telemetry_config, service_name="svc")
        first, second = str(uuid.uuid4()), str(uuid.uuid4())
        client.log_search_event(searchId=first, indexName="idx", queryTerms="a", resultCount=1)
        client.log_search_event(searchId=second, indexName="idx", queryTerms="b", resultCount=1)

        assert client.log_click_event(searchId=second, docId="d", position=0).warnings == []
        assert len(client.log_click_event(searchId=first, docId="d", position=0).warnings) == 1

    async def test_history_disabled_turns_off_orphan_detection(self, memory_sink, telemetry_config):
        telemetry_config.recent_search_history = 0
        client = TelemetryClient(memory_sink, telemetry_config, service_name="svc")

        result = client.log_click_event(searchId=SEARCH_ID, docId="d", position=0)
        assert result.warnings == []

    async def test_correlation_id_object_accepted(self, client, memory_sink):
        search_id = client.obtain_search_id(SEARCH_ID)
        client.log_search_event(searchId=search_id, indexName="idx", queryTerms="q", resultCount=1)
        client.log_click_event(searchId=search_id, docId="d", position=0)

        await client.flush()
        assert [str(e.search_id) for e in memory_sink.events] == [SEARCH_ID, SEARCH_ID]

    async def test_synthesized_ids_skipped_when_backend_correlation_required(self, memory_sink, telemetry_config):
        telemetry_config.require_backend_correlation = True
        client = TelemetryClient(memory_sink, telemetry_config, service_name="svc")

        synthesized = client.obtain_search_id(None)
        skipped = client.log_search_event(searchId=synthesized, indexName="idx", queryTerms="q", resultCount=1)
        kept = client.log_search_event(
            searchId=CorrelationId(SEARCH_ID), indexName="idx", queryTerms="q", resultCount=1
        )

        assert skipped.ok and skipped.skipped
        assert kept.ok and not kept.skipped
        assert len(client.buffer) == 1

    async def test_obtain_from_headers(self, client):
        cid = client.obtain_search_id_from_headers({"x-ms-azs-searchid": SEARCH_ID})
        assert cid.value == SEARCH_ID
        assert not cid.synthesized


@pytest.mark.asyncio
class TestTelemetryClientConfiguration:
    """Defaults, overflow policy, lifecycle."""

    async def test_default_service_name_is_filled_in(self, client, memory_sink):
        client.log_search_event(searchId=SEARCH_ID, indexName="idx", queryTerms="q", resultCount=1)
        await client.flush()
        assert memory_sink.events[0].service_name == "svc"

    async def test_explicit_service_name_wins(self, client, memory_sink):
        client.log_search_event(
            serviceName="other", searchId=SEARCH_ID, indexName="idx", queryTerms="q", resultCount=1
        )
        await client.flush()
        assert memory_sink.events[0].service_name == "other"

    async def test_reject_policy_surfaces_buffer_full(self, memory_sink):
        config = TelemetryConfig(buffer_capacity=1, overflow_policy="reject")
        client = TelemetryClient(memory_sink, config, service_name="svc")

        assert client.log_search_event(searchId=SEARCH_ID, indexName="i", queryTerms="a", resultCount=1).ok
        result = client.log_search_event(searchId=SEARCH_ID, indexName="i", queryTerms="b", resultCount=1)

        assert isinstance(result.error, BufferFullError)

    async def test_drop_oldest_is_silent(self, memory_sink):
        config = TelemetryConfig(buffer_capacity=2)
        client = TelemetryClient(memory_sink, config, service_name="svc")
        for terms in ["a", "b", "c"]:
            assert client.log_search_event(searchId=SEARCH_ID, indexName="i", queryTerms=terms, resultCount=1).ok

        await client.flush()

        assert [e.query_terms for e in memory_sink.events] == ["b", "c"]
        assert client.stats().dropped == 1

    async def test_context_manager_flushes_on_exit(self, memory_sink, telemetry_config):
        async with TelemetryClient(memory_sink, telemetry_config, service_name="svc") as client:
            assert client.stats().dispatcher_running
            client.log_search_event(searchId=SEARCH_ID, indexName="idx", queryTerms="q", resultCount=1)

        assert len(memory_sink.events) == 1
        assert not client.stats().dispatcher_running

    async def test_stats_snapshot(self, client):
        client.log_search_event(searchId=SEARCH_ID, indexName="idx", queryTerms="q", resultCount=1)
        stats = client.stats()

        assert stats.buffered == 1
        assert stats.delivered == 0
        assert stats.dead_lettered == 0


class TestTelemetryConfig:
    """Configuration validation."""

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            TelemetryConfig(buffer_capacity=0)
        with pytest.raises(ValueError):
            TelemetryConfig(overflow_policy="block")
        with pytest.raises(ValueError):
            TelemetryConfig(retry_base_delay=5.0, retry_max_delay=1.0)
        with pytest.raises(ValueError):
            TelemetryConfig(max_retries=-1)
