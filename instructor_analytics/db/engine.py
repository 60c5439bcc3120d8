"""PostgreSQL access over asyncpg.

The analytics service only reads.  Every repository call opens its own
short session from `async_session_factory`, which lets the dashboard run
its reads concurrently instead of queueing on one connection.

Unset DATABASE_URL leaves `engine` and `async_session_factory` as None
and the app reads the in-memory repositories instead.
"""

from __future__ import annotations

import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from instructor_analytics.core.config import SETTINGS, Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def make_engine(settings: Settings) -> AsyncEngine:
    # A query may not outlive the operation that issued it; the server
    # cancels it even if the client-side timeout already fired.
    statement_timeout_ms = math.ceil(settings.analytics_timeout_seconds * 1000)
    return create_async_engine(
        settings.database_url,  # type: ignore[arg-type]
        echo=settings.is_dev,
        pool_size=5,
        max_overflow=settings.analytics_max_concurrency + 2,
        pool_pre_ping=True,
        connect_args={
            "server_settings": {
                "application_name": "instructor-analytics",
                "statement_timeout": str(statement_timeout_ms),
                "default_transaction_read_only": "on",
            }
        },
    )


engine: AsyncEngine | None = make_engine(SETTINGS) if SETTINGS.database_url else None
async_session_factory: async_sessionmaker[AsyncSession] | None = (
    async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    if engine is not None
    else None
)


async def ping_database() -> None:
    """SELECT 1.  Raises when the database cannot be reached."""
    if engine is None:
        raise RuntimeError("DATABASE_URL is not configured")
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


@asynccontextmanager
async def lifespan_db() -> AsyncIterator[None]:
    if engine is None:
        logger.info("DATABASE_URL not set; reading in-memory repositories")
        yield
        return

    logger.info(
        "Reading PostgreSQL at %s", engine.url.render_as_string(hide_password=True)
    )
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database engine disposed")
