"""Service layer.

Services hold the process-wide state (cache, instrumentation, background
queue) and orchestrate the pure matching functions against the
collaborators. They depend on protocols, not concrete repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Orchestration) -> (Collaborators)

Usage:
    ```python
    from grant_matcher.services import CacheService, GrantSearchService, ProfileService

    cache = CacheService.create()
    profiles = ProfileService(store, cache=cache)
    search = GrantSearchService(vector_search, profiles, cache=cache)
    ```
"""

from .background import (
    BackgroundTask,
    BackgroundTaskQueue,
    bulk_operation,
    cache_warmup,
    delayed_cache_invalidation,
)
from .cache_keys import CacheKeys, canonical_json, compute_hash, normalize_query
from .cache_service import CacheService
from .catalog_service import CatalogService
from .performance import PerformanceMonitor, PerformanceScope
from .profile_service import ProfileService, apply_extracted_attributes
from .search_service import GrantSearchService

__all__ = [
    "BackgroundTask",
    "BackgroundTaskQueue",
    "CacheKeys",
    "CacheService",
    "CatalogService",
    "GrantSearchService",
    "PerformanceMonitor",
    "PerformanceScope",
    "ProfileService",
    "apply_extracted_attributes",
    "bulk_operation",
    "cache_warmup",
    "canonical_json",
    "compute_hash",
    "delayed_cache_invalidation",
    "normalize_query",
]
