"""FastAPI application exposing telemetry ingestion for client-side instrumentation."""
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, List, Optional, Tuple

from fastapi import FastAPI

from search_telemetry.core import config
from search_telemetry.core.config import TelemetryConfig
from search_telemetry.db.database import close_db, create_session_factory, init_db
from search_telemetry.routers import events
from search_telemetry.services.telemetry_client import TelemetryClient
from search_telemetry.sinks import (
    EventSink,
    HttpEventSink,
    InMemorySink,
    LoggingSink,
    RedisStreamSink,
    SqlEventSink,
)

logger = logging.getLogger(__name__)

Cleanup = Callable[[], Awaitable[None]]


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    """Configure root logging with the application format."""
    logging.basicConfig(level=level.upper(), format=config.LOG_FORMAT)


async def build_sink(name: str = config.SINK) -> Tuple[EventSink, List[Cleanup]]:
    """Create the configured sink and the callbacks that release it."""
    name = name.lower()

    if name == "memory":
        return InMemorySink(), []
    if name == "logging":
        return LoggingSink(), []
    if name == "http":
        sink = HttpEventSink(config.HTTP_ENDPOINT, api_key=config.HTTP_API_KEY, timeout=config.HTTP_TIMEOUT)
        return sink, [sink.close]
    if name == "redis":
        sink = RedisStreamSink.from_url(
            config.REDIS_URL, stream=config.REDIS_STREAM, maxlen=config.REDIS_STREAM_MAXLEN
        )
        return sink, [sink.close]
    if name == "sql":
        engine, session_factory = create_session_factory(config.DATABASE_URL)
        await init_db(engine)

        async def dispose():
            await close_db(engine)

        return SqlEventSink(session_factory), [dispose]

    raise ValueError(f"Unknown telemetry sink: {name!r}")


def create_app(client: Optional[TelemetryClient] = None) -> FastAPI:
    """Build the application. Pass ``client`` to reuse an existing instance."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ==================== STARTUP ====================
        logger.info("🚀 Starting telemetry ingestion...")
        cleanups: List[Cleanup] = []

        telemetry = client
        if telemetry is None:
            sink, cleanups = await build_sink()
            telemetry = TelemetryClient(sink, TelemetryConfig(), service_name=config.SERVICE_NAME)
            logger.info(f"✅ Telemetry sink ready: {type(sink).__name__}")

        app.state.telemetry = telemetry
        await telemetry.start()
        logger.info("🌟 Application startup complete")

        yield

        # ==================== SHUTDOWN ====================
        logger.info("🙋 Shutting down telemetry ingestion...")
        await telemetry.stop()

        for cleanup in cleanups:
            try:
                await cleanup()
            except Exception as e:
                logger.warning(f"⚠️ Sink cleanup error (non-critical): {e}")

        logger.info("🙋 Application shutdown complete")

    app = FastAPI(
        title=config.APP_NAME,
        description=config.APP_DESCRIPTION,
        version=config.APP_VERSION,
        lifespan=lifespan,
    )
    app.include_router(events.router, prefix="/api")

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        telemetry: TelemetryClient = app.state.telemetry
        stats = telemetry.stats()
        return {
            "status": "healthy",
            "dispatcher": "operational" if stats.dispatcher_running else "stopped",
            "buffered": stats.buffered,
            "dead_lettered": stats.dead_lettered,
        }

    return app


configure_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "search_telemetry.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=False,
    )
