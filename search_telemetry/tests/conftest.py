"""Pytest configuration and shared fixtures."""
import asyncio
import uuid
from typing import List, Optional, Sequence

import pytest

from search_telemetry.core.config import TelemetryConfig
from search_telemetry.core.errors import SinkError, SinkErrorKind
from search_telemetry.core.schemas import ClickEvent, SearchEvent, TelemetryEvent
from search_telemetry.services.telemetry_client import TelemetryClient
from search_telemetry.sinks.memory import InMemorySink

SEARCH_ID = "11111111-1111-1111-1111-111111111111"


class FlakySink(InMemorySink):
    """Fails the first ``failures`` sends, then records batches."""

    def __init__(self, failures: int = 0, kind: SinkErrorKind = SinkErrorKind.TRANSIENT, error: Optional[Exception] = None):
        super().__init__()
        self.failures = failures
        self.kind = kind
        self.error = error
        self.attempts = 0

    async def send(self, events: Sequence[TelemetryEvent]) -> None:
        self.attempts += 1
        if self.failures < 0 or self.attempts <= self.failures:
            if self.error is not None:
                raise self.error
            raise SinkError(f"send failed (attempt {self.attempts})", self.kind)
        await super().send(events)


class SlowSink(InMemorySink):
    """Never finishes a send within a test's patience."""

    def __init__(self, delay: float = 10.0):
        super().__init__()
        self.delay = delay
        self.started = 0

    async def send(self, events: Sequence[TelemetryEvent]) -> None:
        self.started += 1
        await asyncio.sleep(self.delay)
        await super().send(events)


def make_search_event(i: int = 0, search_id: Optional[str] = None) -> SearchEvent:
    return SearchEvent(
        service_name="svc",
        search_id=search_id or uuid.uuid4(),
        index_name="idx",
        query_terms=f"query {i}",
        result_count=i,
    )


def make_click_event(search_id: str = SEARCH_ID, position: int = 0) -> ClickEvent:
    return ClickEvent(
        service_name="svc",
        search_id=search_id,
        doc_id=f"doc{position}",
        position=position,
    )


def make_events(count: int) -> List[SearchEvent]:
    return [make_search_event(i) for i in range(count)]


@pytest.fixture
def telemetry_config() -> TelemetryConfig:
    """Small buffer, no backoff delays."""
    return TelemetryConfig(
        buffer_capacity=100,
        batch_size=10,
        dispatch_interval=5.0,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=0.0,
        max_retries=5,
        flush_timeout=5.0,
    )


@pytest.fixture
def memory_sink() -> InMemorySink:
    return InMemorySink()


@pytest.fixture
def client(memory_sink, telemetry_config) -> TelemetryClient:
    return TelemetryClient(memory_sink, telemetry_config, service_name="svc")
