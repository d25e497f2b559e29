"""Redis implementation of DistributedCacheTier.

Each entry is stored as a JSON envelope carrying the payload, its absolute
deadline and its sliding window. Redis' own key expiry is kept at the
earlier of the two deadlines and pushed forward on every read.
"""

import json
import time
from typing import Any

import redis.asyncio as aioredis
import structlog

from grant_matcher.config import get_redis_client, settings

logger = structlog.get_logger(__name__)


class RedisCacheTier:
    """Shared cache tier backed by Redis.

    This class satisfies the DistributedCacheTier protocol through structural
    typing. Transport errors are raised to the caller; ``CacheService``
    logs them and falls back to its local tier.
    """

    def __init__(
        self,
        redis_client: aioredis.Redis | None = None,
        key_prefix: str | None = None,
    ) -> None:
        """Initialize the tier.

        Args:
            redis_client: asyncio Redis client. If None, creates default.
            key_prefix: Namespace prepended to every key.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = f"{key_prefix or settings.cache_key_prefix}:"

    @classmethod
    def create(cls, key_prefix: str | None = None) -> "RedisCacheTier":
        """Factory method to create RedisCacheTier with defaults from settings."""
        return cls(key_prefix=key_prefix)

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    async def get(self, key: str) -> Any | None:
        raw = await self._client.get(self._prefix + key)
        if raw is None:
            return None

        try:
            envelope = json.loads(raw)
            value = envelope["v"]
        except (ValueError, KeyError, TypeError):
            logger.warning("distributed_entry_corrupt", key=key)
            await self._client.delete(self._prefix + key)
            return None

        ttl_ms = self._ttl_ms(envelope.get("exp"), envelope.get("sliding"))
        if ttl_ms is not None:
            if ttl_ms <= 0:
                await self._client.delete(self._prefix + key)
                return None
            await self._client.pexpire(self._prefix + key, ttl_ms)
        return value

    async def set(
        self,
        key: str,
        value: Any,
        absolute_ttl: float | None,
        sliding_ttl: float | None,
    ) -> None:
        expires_at = time.time() + absolute_ttl if absolute_ttl else None
        envelope = {"v": value, "exp": expires_at, "sliding": sliding_ttl}
        ttl_ms = self._ttl_ms(expires_at, sliding_ttl)
        await self._client.set(
            self._prefix + key,
            json.dumps(envelope, separators=(",", ":")),
            px=max(ttl_ms, 1) if ttl_ms is not None else None,
        )

    async def delete(self, key: str) -> bool:
        deleted: int = await self._client.delete(self._prefix + key)
        return deleted > 0

    async def keys(self, pattern: str) -> list[str]:
        found: list[str] = []
        async for raw in self._client.scan_iter(match=self._prefix + pattern, count=500):
            name = raw.decode() if isinstance(raw, bytes) else raw
            found.append(name[len(self._prefix) :])
        return found

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except Exception as e:
            logger.warning("distributed_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _ttl_ms(expires_at: float | None, sliding_ttl: float | None) -> int | None:
        candidates = []
        if expires_at:
            candidates.append(expires_at - time.time())
        if sliding_ttl:
            candidates.append(sliding_ttl)
        if not candidates:
            return None
        return int(min(candidates) * 1000)
