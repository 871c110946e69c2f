"""Database configuration and session management for the SQL sink."""
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from search_telemetry.core.config import DATABASE_URL

# Base for ORM models
Base = declarative_base()


def create_session_factory(
    database_url: str = DATABASE_URL,
    echo: bool = False,
) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Create an async engine and its session factory."""
    engine = create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
    )
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine, session_factory


async def init_db(engine: AsyncEngine):
    """Initialize telemetry tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine):
    """Close database connection."""
    await engine.dispose()
