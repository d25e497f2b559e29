"""Two-tier cache store.

A process-local tier is consulted first; when a distributed tier is
configured it is consulted next and back-fills the local tier on a hit.
All reads and writes of cached data go through this class.

``get_or_create`` runs at most one factory per key at a time within the
process: concurrent callers for the same missing key queue on a per-key lock
and pick up the value the first caller stored.

Every removal bumps an invalidation generation. A factory that was already
running when a removal happened returns its value to its caller but does not
store it, so an invalidated result never reappears in the cache.

A TTL of 0 means no limit of that kind; None means the configured default.
"""

import asyncio
import re
import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import structlog

from grant_matcher.config import settings
from grant_matcher.entities import CacheEntry, CacheStatistics
from grant_matcher.protocols import DistributedCacheTier

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_MISSING = object()


class _InFlight:
    __slots__ = ("lock", "waiters")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.waiters = 0


def _pattern_to_regex(pattern: str) -> re.Pattern[str]:
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


class CacheService:
    """Cache store with TTL/sliding expiration and pattern invalidation.

    Values must be JSON-compatible (dicts, lists, strings, numbers) so that
    the same payload can live in either tier. Callers own conversion to and
    from their domain types.

    Example:
        ```python
        cache = CacheService.create()
        vector = await cache.get_or_create(
            CacheKeys.embedding(model, text),
            lambda: provider.encode(text),
            absolute_ttl=86400,
        )
        removed = await cache.remove_by_pattern("search:*")
        ```
    """

    def __init__(
        self,
        distributed: DistributedCacheTier | None = None,
        default_absolute_ttl: float | None = None,
        default_sliding_ttl: float | None = None,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache store.

        Args:
            distributed: Optional shared tier (e.g. Redis).
            default_absolute_ttl: Seconds until hard expiry. Defaults to settings.
            default_sliding_ttl: Idle seconds until expiry. Defaults to settings.
            max_entries: Local tier capacity (least recently used evicted first).
            clock: Monotonic time source, injectable for tests.
        """
        self._distributed = distributed
        self._default_absolute_ttl = (
            default_absolute_ttl if default_absolute_ttl is not None else settings.cache_default_absolute_ttl
        )
        self._default_sliding_ttl = (
            default_sliding_ttl if default_sliding_ttl is not None else settings.cache_default_sliding_ttl
        )
        self._max_entries = max_entries or settings.cache_max_entries
        self._clock = clock

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStatistics()
        self._inflight: dict[str, _InFlight] = {}
        self._generation = 0

        logger.info(
            "cache_initialized",
            tier="local+distributed" if distributed is not None else "local",
            max_entries=self._max_entries,
        )

    @classmethod
    def create(
        cls,
        distributed: DistributedCacheTier | None = None,
        max_entries: int | None = None,
    ) -> "CacheService":
        """Factory method to create CacheService with defaults from settings."""
        return cls(distributed=distributed, max_entries=max_entries)

    @property
    def has_distributed_tier(self) -> bool:
        return self._distributed is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        absolute_ttl: float | None = None,
        sliding_ttl: float | None = None,
    ) -> T:
        """Return the cached value for ``key``, computing it on a miss.

        The factory's exceptions (including cancellation) propagate and
        nothing is cached. A factory returning None is not cached, nor is a
        value whose computation overlapped a removal.

        Args:
            key: Cache key
            factory: Coroutine function producing the value
            absolute_ttl: Seconds until hard expiry
            sliding_ttl: Idle seconds until expiry

        Returns:
            The cached or freshly computed value
        """
        self._require_key(key)

        value = await self._lookup(key, absolute_ttl, sliding_ttl)
        if value is not _MISSING:
            self._count_hit(key)
            return value

        async with self._key_lock(key):
            # Another caller may have stored the value while we waited.
            value = await self._lookup(key, absolute_ttl, sliding_ttl)
            if value is not _MISSING:
                self._count_hit(key)
                return value

            self._count_miss(key)
            generation = self._generation
            created = await factory()
            if created is None:
                return created
            if generation != self._generation:
                logger.debug("cache_store_skipped", key=key, reason="invalidated")
                return created
            await self.set(key, created, absolute_ttl, sliding_ttl)
            return created

    async def get(self, key: str) -> Any | None:
        """Return the cached value or None."""
        self._require_key(key)

        value = await self._lookup(key, None, None)
        if value is _MISSING:
            self._count_miss(key)
            return None

        self._count_hit(key)
        return value

    async def set(
        self,
        key: str,
        value: Any,
        absolute_ttl: float | None = None,
        sliding_ttl: float | None = None,
    ) -> None:
        """Store a value in both tiers; a distributed-tier failure is logged only."""
        self._require_key(key)
        if value is None:
            raise ValueError("Cannot cache None")

        absolute_ttl, sliding_ttl = self._resolve_ttls(absolute_ttl, sliding_ttl)

        self._set_local(key, value, absolute_ttl, sliding_ttl)

        if self._distributed is not None:
            try:
                await self._distributed.set(key, value, absolute_ttl, sliding_ttl)
            except Exception as e:
                self._distributed_failed("set", key, e)

    async def remove(self, key: str) -> bool:
        """Remove one key from both tiers.

        Returns:
            True if the key was present in either tier
        """
        self._require_key(key)
        self._generation += 1

        removed = self._remove_local(key)

        if self._distributed is not None:
            try:
                removed = await self._distributed.delete(key) or removed
            except Exception as e:
                self._distributed_failed("delete", key, e)

        if removed:
            logger.debug("cache_removed", key=key)
        return removed

    async def remove_by_pattern(self, pattern: str) -> int:
        """Remove every tracked key matching a glob with ``*`` wildcards.

        Returns:
            Number of distinct keys removed
        """
        if not pattern or not pattern.strip():
            raise ValueError("Pattern cannot be empty")

        self._generation += 1
        regex = _pattern_to_regex(pattern)
        with self._lock:
            local_keys = [k for k in self._entries if regex.match(k)]

        distributed_keys: list[str] = []
        if self._distributed is not None:
            try:
                distributed_keys = await self._distributed.keys(pattern)
            except Exception as e:
                self._distributed_failed("keys", pattern, e)

        keys = list(dict.fromkeys(local_keys + distributed_keys))
        logger.info("cache_remove_by_pattern", pattern=pattern, count=len(keys))

        removed = 0
        for key in keys:
            if await self.remove(key):
                removed += 1
        return removed

    async def clear(self) -> int:
        """Remove everything this cache tracks."""
        logger.warning("cache_clear")
        return await self.remove_by_pattern("*")

    def purge_expired(self) -> int:
        """Drop expired local entries; returns how many were evicted."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._stats.evictions += len(expired)
        return len(expired)

    def stats(self) -> CacheStatistics:
        """Snapshot of hit/miss/eviction counters."""
        with self._lock:
            return CacheStatistics(
                hits=self._stats.hits,
                misses=self._stats.misses,
                evictions=self._stats.evictions,
                current_entries=len(self._entries),
                distributed_errors=self._stats.distributed_errors,
            )

    async def is_healthy(self) -> bool:
        if self._distributed is None:
            return True
        try:
            return await self._distributed.health_check()
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _require_key(key: str) -> None:
        if not key or not key.strip():
            raise ValueError("Cache key cannot be empty")

    @asynccontextmanager
    async def _key_lock(self, key: str):
        inflight = self._inflight.get(key)
        if inflight is None:
            inflight = self._inflight[key] = _InFlight()
        inflight.waiters += 1
        try:
            async with inflight.lock:
                yield
        finally:
            inflight.waiters -= 1
            if inflight.waiters == 0:
                self._inflight.pop(key, None)

    async def _lookup(
        self,
        key: str,
        absolute_ttl: float | None,
        sliding_ttl: float | None,
    ) -> Any:
        value = self._get_local(key)
        if value is not _MISSING or self._distributed is None:
            return value

        try:
            value = await self._distributed.get(key)
        except Exception as e:
            self._distributed_failed("get", key, e)
            return _MISSING

        if value is None:
            return _MISSING

        logger.debug("cache_backfill", key=key)
        self._set_local(key, value, *self._resolve_ttls(absolute_ttl, sliding_ttl))
        return value

    def _resolve_ttls(self, absolute_ttl: float | None, sliding_ttl: float | None) -> tuple[float, float]:
        return (
            absolute_ttl if absolute_ttl is not None else self._default_absolute_ttl,
            sliding_ttl if sliding_ttl is not None else self._default_sliding_ttl,
        )

    def _get_local(self, key: str) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            if entry.is_expired(now):
                del self._entries[key]
                self._stats.evictions += 1
                return _MISSING
            entry.last_accessed = now
            self._entries.move_to_end(key)
            return entry.value

    def _set_local(self, key: str, value: Any, absolute_ttl: float, sliding_ttl: float) -> None:
        now = self._clock()
        entry = CacheEntry(
            key=key,
            value=value,
            absolute_expiration=now + absolute_ttl if absolute_ttl else None,
            sliding_expiration=sliding_ttl or None,
            last_accessed=now,
        )
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
                self._stats.evictions += 1

    def _remove_local(self, key: str) -> bool:
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._stats.evictions += 1
            return True

    def _count_hit(self, key: str) -> None:
        with self._lock:
            self._stats.hits += 1
        logger.debug("cache_hit", key=key)

    def _count_miss(self, key: str) -> None:
        with self._lock:
            self._stats.misses += 1
        logger.debug("cache_miss", key=key)

    def _distributed_failed(self, operation: str, key: str, error: Exception) -> None:
        with self._lock:
            self._stats.distributed_errors += 1
        logger.warning("distributed_cache_failed", operation=operation, key=key, error=str(error))
