# insight_backend/services/query_cache.py
"""
In-memory TTL cache for tabular query results.

Entries expire lazily on read; an optional asyncio task sweeps expired
entries every few minutes so memory stays bounded under low read traffic.
Single event loop only: get/set never await, so no lock is needed.
"""
import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from insight_backend.schemas.query import DataQuery, Dialect, QueryResult

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass
class CacheEntry:
    key: str
    value: QueryResult
    expires_at: float


def fingerprint(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def build_cache_key(query: DataQuery, default_workspace: str = "") -> str:
    """
    dax:{workspace}:{dataset}:{sha256}
    sql:{workspace}:{connection}:{sha256}

    Workspace/connection are part of the key so identical SQL text sent to
    different endpoints never shares an entry.
    """
    workspace = query.workspace_id or default_workspace or "-"
    if query.dialect == Dialect.DAX:
        scope = query.dataset_id or "-"
    else:
        scope = query.connection_id or "-"
    return f"{query.dialect.value}:{workspace}:{scope}:{fingerprint(query.text)}"


class QueryCache:
    def __init__(
        self,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        sweep_interval: float = 300.0,
        clock: Callable[[], float] = time.time,
    ):
        self._entries: Dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._sweeper: Optional[asyncio.Task] = None

    def get(self, key: str) -> Optional[QueryResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() > entry.expires_at:
            del self._entries[key]
            logger.debug("Cache expired: %s", key)
            return None

        logger.debug("Cache hit: %s", key)
        return entry.value

    def set(self, key: str, value: QueryResult, ttl: Optional[int] = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)
        logger.debug("Cache set: %s (expires in %ss)", key, ttl)

    def delete(self, key: str) -> bool:
        deleted = self._entries.pop(key, None) is not None
        if deleted:
            logger.debug("Cache deleted: %s", key)
        return deleted

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Query cache cleared")

    def size(self) -> int:
        return len(self._entries)

    def sweep(self) -> int:
        """Remove every expired entry. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now > e.expires_at]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("Cache cleanup: removed %s expired entries", len(expired))
        return len(expired)

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[QueryResult]],
        ttl: Optional[int] = None,
    ) -> QueryResult:
        cached = self.get(key)
        if cached is not None:
            return cached

        value = await factory()
        self.set(key, value, ttl)
        return value

    # ---------------------------------------------------------
    # background sweep
    # ---------------------------------------------------------
    def start_sweeper(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()
