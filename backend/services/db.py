"""Async SQLAlchemy engine helpers for the weather cache table."""

import logging
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Naive UTC now. The cache table stores naive UTC timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_engine(database_url: str) -> AsyncEngine:
    # Connections are opened lazily, so this is safe to call outside the event loop.
    return create_async_engine(database_url, pool_pre_ping=True)


async def init_db(engine: AsyncEngine) -> None:
    """Create the cache table if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Cache schema ready on %s", engine.url.render_as_string(hide_password=True))


async def ping(engine: AsyncEngine) -> int:
    """Run a trivial query; raises if the database is unreachable."""
    async with engine.connect() as conn:
        result = await conn.execute(text("SELECT 1 + 1 AS solution"))
        return result.scalar_one()
