"""HTTP handlers for read-only diagnostics and cache administration."""

import structlog

from grant_matcher.dto import (
    BackgroundQueueResponse,
    CacheStatsResponse,
    ClearCacheResponse,
    HealthCheckResponse,
    PerformanceStatsResponse,
)
from grant_matcher.services import BackgroundTaskQueue, CacheService, PerformanceMonitor, ProfileService

from .errors import translate_errors

logger = structlog.get_logger(__name__)


class DiagnosticsHandler:
    def __init__(
        self,
        cache: CacheService,
        monitor: PerformanceMonitor,
        background: BackgroundTaskQueue,
        profiles: ProfileService,
    ) -> None:
        self._cache = cache
        self._monitor = monitor
        self._background = background
        self._profiles = profiles

    async def cache_stats(self) -> CacheStatsResponse:
        return CacheStatsResponse.model_validate(self._cache.stats())

    async def performance_stats(self) -> PerformanceStatsResponse:
        return PerformanceStatsResponse.model_validate(self._monitor.statistics())

    async def reset_performance_stats(self) -> dict:
        self._monitor.reset()
        logger.info("performance_stats_reset")
        return {"success": True, "message": "Performance statistics reset"}

    async def clear_cache(self, pattern: str = "*") -> ClearCacheResponse:
        """Remove every cache key matching ``pattern`` (``*`` clears everything)."""
        with translate_errors("clear_cache"):
            removed = await self._cache.remove_by_pattern(pattern)
        logger.info("cache_cleared", pattern=pattern, removed=removed)
        return ClearCacheResponse(pattern=pattern, removed=removed)

    async def background(self) -> BackgroundQueueResponse:
        return BackgroundQueueResponse(**self._background.stats())

    async def health_check(self) -> HealthCheckResponse:
        cache_healthy = await self._cache.is_healthy()
        background_running = self._background.is_running
        return HealthCheckResponse(
            status="healthy" if cache_healthy and background_running else "degraded",
            cache_healthy=cache_healthy,
            distributed_cache=self._cache.has_distributed_tier,
            background_running=background_running,
            conversation_enabled=self._profiles.conversation_enabled,
        )
