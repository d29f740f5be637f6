"""Relational cache table with lazy TTL expiry.

One row per normalized city key. Rows are never deleted: reads ignore rows
whose expiry has passed and the next miss overwrites them in place with the
database's native upsert, so concurrent writers for the same key resolve to
last-write-wins without any locking on our side.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import DateTime, String, Text, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from errors import StoreError
from services.db import Base

logger = logging.getLogger(__name__)


class WeatherCacheRow(Base):
    __tablename__ = "weather_cache"

    cache_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    # Provider response body, stored verbatim.
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: str
    expires_at: datetime


def _upsert_statement(dialect: str, key: str, payload: str, expires_at: datetime):
    values = {"cache_key": key, "payload": payload, "expires_at": expires_at}

    if dialect in ("sqlite", "postgresql"):
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            from sqlalchemy.dialects.postgresql import insert
        stmt = insert(WeatherCacheRow).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[WeatherCacheRow.cache_key],
            set_={"payload": stmt.excluded.payload, "expires_at": stmt.excluded.expires_at},
        )

    if dialect in ("mysql", "mariadb"):
        from sqlalchemy.dialects.mysql import insert

        stmt = insert(WeatherCacheRow).values(**values)
        return stmt.on_duplicate_key_update(
            payload=stmt.inserted.payload,
            expires_at=stmt.inserted.expires_at,
        )

    raise StoreError(f"Unsupported cache database dialect: {dialect}")


class CacheStore:
    """Keyed expiring store backed by the ``weather_cache`` table."""

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def get(self, key: str, now: datetime) -> CacheEntry | None:
        """Return the entry for ``key`` only if it is still fresh at ``now``."""
        query = select(WeatherCacheRow).where(
            WeatherCacheRow.cache_key == key,
            WeatherCacheRow.expires_at > now,
        )
        try:
            async with self._sessions() as session:
                row = (await session.execute(query)).scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            logger.error("Cache read failed for %s: %s", key, e)
            raise StoreError(f"Cache read failed: {e}") from e

        if row is None:
            return None
        return CacheEntry(key=row.cache_key, payload=row.payload, expires_at=row.expires_at)

    async def upsert(self, key: str, payload: str, expires_at: datetime) -> None:
        """Insert or replace the entry for ``key`` in a single statement."""
        stmt = _upsert_statement(self._engine.dialect.name, key, payload, expires_at)
        try:
            async with self._sessions.begin() as session:
                await session.execute(stmt)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Cache write failed for %s: %s", key, e)
            raise StoreError(f"Cache write failed: {e}") from e
