"""Cache-aside weather lookup.

    lookup(city) -> store hit?  -> return cached payload
                 -> miss/stale -> fetch from provider -> upsert -> return

Concurrent misses on the same key each fetch and each upsert; the upsert is
idempotent and last write wins, so that is only a wasted provider call.
``SingleFlight`` collapses those calls when enabled.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Literal, Protocol

from services.cache import CacheEntry
from services.db import utcnow

logger = logging.getLogger(__name__)

Source = Literal["store", "provider"]


class Store(Protocol):
    async def get(self, key: str, now: datetime) -> CacheEntry | None: ...

    async def upsert(self, key: str, payload: str, expires_at: datetime) -> None: ...


class Provider(Protocol):
    async def fetch(self, query: str) -> str: ...


@dataclass(frozen=True)
class LookupResult:
    value: str
    source: Source


def normalize_key(key: str) -> str:
    normalized = key.strip().casefold()
    if not normalized:
        raise ValueError("City name must not be empty")
    return normalized


class SingleFlight:
    """Share one in-flight call per key among concurrent callers."""

    def __init__(self):
        self._inflight: dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    async def do(self, key: str, fn: Callable[[], Awaitable[str]]) -> str:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug("Joining in-flight refresh for %s", key)
        # A cancelled caller must not cancel the refresh other callers wait on.
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark a failure as retrieved even when every waiting caller was cancelled.
        if not task.cancelled():
            task.exception()


class CacheAsideResolver:
    def __init__(
        self,
        store: Store,
        provider: Provider,
        ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = utcnow,
        single_flight: SingleFlight | None = None,
    ):
        if ttl <= timedelta(0):
            raise ValueError("Cache TTL must be positive")
        self._store = store
        self._provider = provider
        self._ttl = ttl
        self._clock = clock
        self._single_flight = single_flight

    async def lookup(self, key: str) -> LookupResult:
        """Return fresh weather for ``key`` from the store or the provider.

        Provider and store errors propagate unchanged; nothing is written to
        the store when the provider call fails.
        """
        normalized = normalize_key(key)

        entry = await self._store.get(normalized, self._clock())
        if entry is not None:
            logger.debug("Cache hit for %s (expires %s)", normalized, entry.expires_at)
            return LookupResult(value=entry.payload, source="store")

        query = key.strip()
        if self._single_flight is not None:
            payload = await self._single_flight.do(normalized, lambda: self._refresh(normalized, query))
        else:
            payload = await self._refresh(normalized, query)
        return LookupResult(value=payload, source="provider")

    async def _refresh(self, normalized: str, query: str) -> str:
        logger.info("Cache miss for %s, fetching from provider", normalized)
        payload = await self._provider.fetch(query)
        expires_at = self._clock() + self._ttl
        await self._store.upsert(normalized, payload, expires_at)
        return payload
