"""Tests for the HTTP ingestion endpoints."""
import pytest
from fastapi.testclient import TestClient

from search_telemetry.main import build_sink, create_app
from search_telemetry.services.telemetry_client import TelemetryClient
from search_telemetry.sinks.memory import InMemorySink, LoggingSink
from search_telemetry.tests.conftest import SEARCH_ID

SEARCH_PAYLOAD = {
    "serviceName": "svc",
    "searchId": SEARCH_ID,
    "indexName": "idx",
    "queryTerms": "shoes",
    "resultCount": 5,
    "scoringProfile": None,
}

CLICK_PAYLOAD = {
    "serviceName": "svc",
    "searchId": SEARCH_ID,
    "docId": "doc42",
    "position": 2,
}


@pytest.fixture
def api(memory_sink, telemetry_config):
    telemetry = TelemetryClient(memory_sink, telemetry_config, service_name="svc")
    with TestClient(create_app(client=telemetry)) as test_client:
        yield test_client


class TestEventsRouter:
    """Ingestion, flush and stats endpoints."""

    def test_search_and_click_flow(self, api, memory_sink):
        search = api.post("/api/events/search", json=SEARCH_PAYLOAD)
        click = api.post("/api/events/click", json=CLICK_PAYLOAD)

        assert search.status_code == 200
        assert search.json()["status"] == "recorded"
        assert click.json()["warnings"] == []

        flushed = api.post("/api/events/flush")
        assert flushed.status_code == 200
        assert flushed.json()["delivered"] == 2
        assert [e.event_type for e in memory_sink.events] == ["search", "click"]

    def test_invalid_event_returns_422_with_field(self, api):
        response = api.post("/api/events/click", json={**CLICK_PAYLOAD, "searchId": "not-a-uuid"})

        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "searchId"

    def test_supplied_timestamp_returns_422(self, api):
        response = api.post("/api/events/click", json={**CLICK_PAYLOAD, "timestamp": "1970-01-01T00:00:00"})

        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "timestamp"

    def test_orphan_click_reports_warning(self, api):
        response = api.post("/api/events/click", json=CLICK_PAYLOAD)

        assert response.status_code == 200
        assert len(response.json()["warnings"]) == 1

    def test_stats(self, api):
        api.post("/api/events/search", json=SEARCH_PAYLOAD)

        stats = api.get("/api/events/stats").json()

        assert stats["buffered"] == 1
        assert stats["dispatcher_running"] is True
        assert "total_delivered" in stats["dispatcher"]

    def test_health(self, api):
        body = api.get("/health").json()

        assert body["status"] == "healthy"
        assert body["dispatcher"] == "operational"

    def test_shutdown_flushes(self, memory_sink, telemetry_config):
        telemetry = TelemetryClient(memory_sink, telemetry_config, service_name="svc")
        with TestClient(create_app(client=telemetry)) as test_client:
            test_client.post("/api/events/search", json=SEARCH_PAYLOAD)

        assert len(memory_sink.events) == 1


@pytest.mark.asyncio
class TestBuildSink:
    """Sink selection by name."""

    async def test_memory_and_logging(self):
        sink, cleanups = await build_sink("memory")
        assert isinstance(sink, InMemorySink) and cleanups == []

        sink, cleanups = await build_sink("LOGGING")
        assert isinstance(sink, LoggingSink)

    async def test_unknown_sink(self):
        with pytest.raises(ValueError):
            await build_sink("kafka")
