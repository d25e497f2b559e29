"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - One ServiceContainer is built at startup (or injected by tests)
    - Services and handlers are stored in app.state during lifespan
    - Dependency functions retrieve them from request.app.state
    - No process-wide singletons: the cache store lives in the container
"""

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Annotated

import structlog
from fastapi import Depends, FastAPI, Request

from grant_matcher.config import Settings, settings
from grant_matcher.handlers import DiagnosticsHandler, MatchingHandler
from grant_matcher.logging_config import configure_logging
from grant_matcher.matching import ScoringConfig
from grant_matcher.protocols import EmbeddingProvider, VectorSearchService
from grant_matcher.repositories import (
    CachedEmbeddingProvider,
    HttpConversationProvider,
    HttpVectorSearchClient,
    OllamaEmbeddingProvider,
    RedisCacheTier,
    RedisDocumentStore,
    RedisVectorSearch,
)
from grant_matcher.services import (
    BackgroundTaskQueue,
    CacheService,
    CatalogService,
    GrantSearchService,
    PerformanceMonitor,
    ProfileService,
)

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """Everything the API needs, constructed once per process."""

    cache: CacheService
    monitor: PerformanceMonitor
    background: BackgroundTaskQueue
    profiles: ProfileService
    search: GrantSearchService
    catalog: CatalogService
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    def matching_handler(self) -> MatchingHandler:
        return MatchingHandler(self.search, self.catalog, self.profiles)

    def diagnostics_handler(self) -> DiagnosticsHandler:
        return DiagnosticsHandler(self.cache, self.monitor, self.background, self.profiles)

    async def close(self) -> None:
        for close in self.closers:
            try:
                await close()
            except Exception:
                logger.exception("collaborator_close_failed")


def _embedding_provider(config: Settings) -> EmbeddingProvider:
    if config.embedding_backend == "local":
        # Imported here: loading sentence-transformers is slow and optional
        from grant_matcher.repositories.local_embedding_provider import LocalEmbeddingProvider

        return LocalEmbeddingProvider.create()
    return OllamaEmbeddingProvider.create()


def build_container(config: Settings = settings) -> ServiceContainer:
    """Wire real collaborators from settings."""
    closers: list[Callable[[], Awaitable[None]]] = []

    distributed = RedisCacheTier.create() if config.distributed_cache_enabled else None
    if distributed is not None:
        closers.append(distributed.close)

    cache = CacheService.create(distributed=distributed)
    monitor = PerformanceMonitor()
    background = BackgroundTaskQueue()

    store = RedisDocumentStore.create()
    closers.append(store.close)

    raw_embeddings = _embedding_provider(config)
    if isinstance(raw_embeddings, OllamaEmbeddingProvider):
        closers.append(raw_embeddings.close)
    embeddings = CachedEmbeddingProvider(raw_embeddings, cache, monitor)

    vector_search: VectorSearchService
    if config.vector_search_backend == "redis":
        vector_search = RedisVectorSearch.create(embedding_provider=embeddings)
        # store_entity embeds the narrative itself
        catalog_embeddings = None
    else:
        http_search = HttpVectorSearchClient.create()
        closers.append(http_search.close)
        vector_search = http_search
        catalog_embeddings = embeddings

    conversation = HttpConversationProvider.create()
    if conversation is not None:
        closers.append(conversation.close)

    profiles = ProfileService(store, cache=cache, background=background, conversation=conversation)
    search = GrantSearchService(
        vector_search,
        profiles,
        cache=cache,
        monitor=monitor,
        scoring=ScoringConfig.from_settings(config),
    )
    catalog = CatalogService(
        store,
        vector_search,
        cache=cache,
        background=background,
        embeddings=catalog_embeddings,
        monitor=monitor,
    )

    logger.info(
        "services_initialized",
        vector_search=config.vector_search_backend,
        embeddings=f"{config.embedding_backend}:{raw_embeddings.model_name}",
        distributed_cache=distributed is not None,
        conversation=conversation is not None,
    )
    return ServiceContainer(
        cache=cache,
        monitor=monitor,
        background=background,
        profiles=profiles,
        search=search,
        catalog=catalog,
        closers=closers,
    )


def make_lifespan(container: ServiceContainer | None = None):
    """Build the lifespan context manager.

    Args:
        container: Prebuilt services (tests pass fakes). Built from settings if None.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level, json_output=settings.log_json)
        services = container or build_container()
        await services.background.start()

        app.state.container = services
        app.state.matching_handler = services.matching_handler()
        app.state.diagnostics_handler = services.diagnostics_handler()

        yield

        await services.background.stop(drain=True)
        await services.close()
        del app.state.diagnostics_handler
        del app.state.matching_handler
        del app.state.container
        logger.info("services_shut_down")

    return lifespan


def get_matching_handler(request: Request) -> MatchingHandler:
    """Dependency injection for MatchingHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "matching_handler", None)
    if handler is None:
        raise RuntimeError("MatchingHandler not initialized. Check lifespan setup.")
    return handler


def get_diagnostics_handler(request: Request) -> DiagnosticsHandler:
    handler = getattr(request.app.state, "diagnostics_handler", None)
    if handler is None:
        raise RuntimeError("DiagnosticsHandler not initialized. Check lifespan setup.")
    return handler


# Type aliases for cleaner dependency injection
MatchingHandlerDep = Annotated[MatchingHandler, Depends(get_matching_handler)]
DiagnosticsHandlerDep = Annotated[DiagnosticsHandler, Depends(get_diagnostics_handler)]
