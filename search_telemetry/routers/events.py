"""Ingestion endpoints for client-side search and click instrumentation."""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from search_telemetry.core.errors import BufferFullError, ValidationError
from search_telemetry.core.results import Result
from search_telemetry.services.telemetry_client import TelemetryClient

router = APIRouter()


def get_telemetry_client(request: Request) -> TelemetryClient:
    """Dependency returning the client owned by the application."""
    client = getattr(request.app.state, "telemetry", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Telemetry client not initialized")
    return client


def _respond(result: Result) -> dict:
    if isinstance(result.error, ValidationError):
        raise HTTPException(status_code=422, detail=result.error.to_dict())
    if isinstance(result.error, BufferFullError):
        raise HTTPException(status_code=503, detail=str(result.error))
    if result.skipped:
        return {"status": "skipped"}

    return {
        "status": "recorded",
        "eventId": str(result.value.event_id),
        "warnings": [str(w) for w in result.warnings],
    }


@router.post("/events/search")
async def record_search(
    payload: Dict[str, Any] = Body(...),
    client: TelemetryClient = Depends(get_telemetry_client),
):
    """Record a search event."""
    return _respond(client.log_event("search", payload))


@router.post("/events/click")
async def record_click(
    payload: Dict[str, Any] = Body(...),
    client: TelemetryClient = Depends(get_telemetry_client),
):
    """Record a click on a search result."""
    return _respond(client.log_event("click", payload))


@router.post("/events/flush")
async def flush_events(client: TelemetryClient = Depends(get_telemetry_client)):
    """Deliver everything buffered now."""
    result = await client.flush()
    if not result.ok:
        raise HTTPException(
            status_code=504,
            detail={
                "message": str(result.error),
                "report": result.error.report.model_dump(mode="json") if result.error.report else None,
            },
        )
    return result.value.model_dump(mode="json")


@router.get("/events/stats")
async def event_stats(client: TelemetryClient = Depends(get_telemetry_client)):
    """Buffer, delivery and dead-letter counters."""
    return {
        **client.stats().model_dump(),
        "dispatcher": client.dispatcher.metrics.to_dict(),
    }
