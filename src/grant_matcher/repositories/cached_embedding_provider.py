"""Caching decorator for any EmbeddingProvider.

Embeddings are deterministic for identical text, so vectors are cached for a
long time (24 hours by default) under ``embedding:<hash of model + text>``.
Concurrent requests for the same text share one provider call.
"""

from grant_matcher.config import settings
from grant_matcher.protocols import EmbeddingProvider
from grant_matcher.services.cache_keys import CacheKeys
from grant_matcher.services.cache_service import CacheService
from grant_matcher.services.performance import PerformanceMonitor


class CachedEmbeddingProvider:
    """EmbeddingProvider wrapper backed by the cache store."""

    def __init__(
        self,
        inner: EmbeddingProvider,
        cache: CacheService,
        monitor: PerformanceMonitor | None = None,
        ttl: float | None = None,
    ) -> None:
        self._inner = inner
        self._cache = cache
        self._monitor = monitor or PerformanceMonitor()
        self._ttl = ttl or settings.embedding_cache_ttl

    @property
    def dimension(self) -> int:
        return self._inner.dimension

    @property
    def model_name(self) -> str:
        return self._inner.model_name

    async def encode(self, text: str) -> list[float]:
        return await self._cache.get_or_create(
            CacheKeys.embedding(self._inner.model_name, text),
            lambda: self._monitor.track(
                "generate_embedding",
                lambda: self._inner.encode(text),
                model=self._inner.model_name,
                text_length=len(text),
            ),
            absolute_ttl=self._ttl,
            sliding_ttl=self._ttl,
        )

    async def is_available(self) -> bool:
        return await self._inner.is_available()
