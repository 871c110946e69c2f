"""All router modules for the application."""

from search_telemetry.routers import events

__all__ = [
    "events",
]
