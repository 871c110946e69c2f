"""Sinks module - Adapters to external telemetry destinations."""

from search_telemetry.sinks.base import EventSink
from search_telemetry.sinks.memory import InMemorySink, LoggingSink
from search_telemetry.sinks.http import HttpEventSink
from search_telemetry.sinks.redis_stream import RedisStreamSink
from search_telemetry.sinks.sql import SqlEventSink

__all__ = [
    "EventSink",
    "InMemorySink",
    "LoggingSink",
    "HttpEventSink",
    "RedisStreamSink",
    "SqlEventSink",
]
