from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from storefront.core.metrics import CACHE_HITS, CACHE_MISSES
from storefront.domain.models import QueryResult
from storefront.domain.ports import StorefrontError, UnauthorizedError

logger = logging.getLogger(__name__)

# (endpoint, tenant, discriminator...)
QueryKey = tuple[str, ...]
Fetcher = Callable[[], Awaitable[Any]]


@dataclass
class _Entry:
    data: Any = None
    error: StorefrontError | None = None
    updated_at: float | None = None
    invalidated: bool = False
    last_accessed: float = field(default_factory=time.time)
    fetch_task: asyncio.Task[None] | None = None

    @property
    def is_fetching(self) -> bool:
        return self.fetch_task is not None and not self.fetch_task.done()

    def is_stale(self, stale_seconds: float, now: float) -> bool:
        if self.invalidated or self.updated_at is None:
            return True
        return (now - self.updated_at) >= stale_seconds


@dataclass(frozen=True)
class CacheSnapshot:
    data: Any = None
    error: StorefrontError | None = None
    updated_at: float | None = None
    invalidated: bool = False


class QueryCache:
    """
    Prozessweiter In-Memory Query Cache mit Stale-While-Revalidate.

    - Frische Einträge werden ohne Netzwerkaufruf geliefert.
    - Veraltete Einträge werden sofort geliefert und im Hintergrund neu geladen.
    - Pro Key läuft höchstens ein Fetch gleichzeitig (Request-Deduplizierung).
    - Fehler setzen `error`, die letzten gültigen Daten bleiben erhalten.
    - Einträge, die länger als `gc_seconds` nicht gelesen wurden, werden verworfen.
    """

    def __init__(
        self,
        gc_seconds: float,
        retry_delay_seconds: float = 1.0,
        retry_delay_max_seconds: float = 30.0,
    ) -> None:
        self._gc_seconds = gc_seconds
        self._retry_delay = retry_delay_seconds
        self._retry_delay_max = retry_delay_max_seconds
        self._entries: dict[QueryKey, _Entry] = {}

    async def fetch(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        *,
        stale_seconds: float,
        retries: int = 0,
    ) -> QueryResult[Any]:
        now = time.time()
        self.collect_garbage(now)
        entry = self._touch(key, now)

        if entry.data is not None and not entry.is_stale(stale_seconds, now):
            CACHE_HITS.labels(endpoint=key[0]).inc()
            return self._snapshot(entry, stale_seconds)

        CACHE_MISSES.labels(endpoint=key[0]).inc()
        task = self._start_fetch(key, entry, fetcher, retries)
        if entry.data is None:
            await self._wait(task)
        # else: stale data is served while the refetch runs in the background
        return self._snapshot(entry, stale_seconds)

    async def refetch(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        *,
        stale_seconds: float,
        retries: int = 0,
    ) -> QueryResult[Any]:
        """Forces a network fetch (joining one already in flight) and waits for it."""
        entry = self._touch(key, time.time())
        await self._wait(self._start_fetch(key, entry, fetcher, retries))
        return self._snapshot(entry, stale_seconds)

    def get_data(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def set_data(self, key: QueryKey, updater: Callable[[Any], Any]) -> Any:
        """
        Functional update: `updater` receives the entry's *current* data, so
        concurrent optimistic writes always build on each other.
        """
        entry = self._touch(key, time.time())
        data = updater(entry.data)
        if data is entry.data:
            return data
        entry.data = data
        entry.error = None
        entry.updated_at = time.time()
        return entry.data

    def snapshot(self, key: QueryKey) -> CacheSnapshot:
        entry = self._entries.get(key)
        if entry is None:
            return CacheSnapshot()
        return CacheSnapshot(entry.data, entry.error, entry.updated_at, entry.invalidated)

    def restore(self, key: QueryKey, snapshot: CacheSnapshot) -> None:
        """Puts back a previously taken snapshot as-is (rollback), freshness included."""
        entry = self._touch(key, time.time())
        entry.data = snapshot.data
        entry.error = snapshot.error
        entry.updated_at = snapshot.updated_at
        entry.invalidated = snapshot.invalidated

    async def cancel(self, key: QueryKey) -> None:
        """Cancels an in-flight fetch; its result is discarded."""
        entry = self._entries.get(key)
        task = entry.fetch_task if entry is not None else None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.wait([task])

    def invalidate(self, prefix: QueryKey) -> int:
        count = 0
        for key, entry in self._entries.items():
            if key[: len(prefix)] == prefix:
                entry.invalidated = True
                count += 1
        return count

    def entries(self, prefix: QueryKey) -> Iterator[tuple[QueryKey, Any]]:
        for key, entry in list(self._entries.items()):
            if key[: len(prefix)] == prefix and entry.data is not None:
                yield key, entry.data

    def collect_garbage(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        expired = [
            key
            for key, entry in self._entries.items()
            if not entry.is_fetching and (now - entry.last_accessed) > self._gc_seconds
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Garbage-collected %d query cache entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Fetch-Lebenszyklus
    # ------------------------------------------------------------------

    def _touch(self, key: QueryKey, now: float) -> _Entry:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.last_accessed = now
        return entry

    def _start_fetch(
        self, key: QueryKey, entry: _Entry, fetcher: Fetcher, retries: int
    ) -> asyncio.Task[None]:
        if entry.fetch_task is not None and not entry.fetch_task.done():
            return entry.fetch_task
        task = asyncio.create_task(self._run_fetch(key, entry, fetcher, retries))
        entry.fetch_task = task
        task.add_done_callback(self._fetch_done)
        return task

    async def _run_fetch(
        self, key: QueryKey, entry: _Entry, fetcher: Fetcher, retries: int
    ) -> None:
        attempt = 0
        while True:
            try:
                data = await fetcher()
            except UnauthorizedError as e:
                # Kein Retry bei abgelaufener Session
                self._record_error(key, entry, e)
                return
            except StorefrontError as e:
                if attempt >= retries:
                    self._record_error(key, entry, e)
                    return
                delay = min(self._retry_delay * 2**attempt, self._retry_delay_max)
                attempt += 1
                logger.info("Retrying %s (attempt %d) in %.2fs: %s", key[0], attempt, delay, e)
                await asyncio.sleep(delay)
            else:
                entry.data = data
                entry.error = None
                entry.invalidated = False
                entry.updated_at = time.time()
                return

    @staticmethod
    def _record_error(key: QueryKey, entry: _Entry, error: StorefrontError) -> None:
        logger.warning("Query %s failed: %s", key[0], error)
        entry.error = error

    @staticmethod
    def _fetch_done(task: asyncio.Task[None]) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Query fetch crashed", exc_info=task.exception())

    @staticmethod
    async def _wait(task: asyncio.Task[None]) -> None:
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # Fetch was cancelled via cancel(); the caller itself was not
            if not task.cancelled():
                raise

    @staticmethod
    def _snapshot(entry: _Entry, stale_seconds: float) -> QueryResult[Any]:
        error = entry.error
        return QueryResult(
            data=entry.data,
            error=str(error) if error is not None else None,
            error_status=error.status_code if error is not None else None,
            is_fetching=entry.is_fetching,
            is_stale=entry.is_stale(stale_seconds, time.time()),
            updated_at=(
                datetime.fromtimestamp(entry.updated_at, UTC)
                if entry.updated_at is not None
                else None
            ),
        )
