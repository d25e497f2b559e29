"""Grant catalog maintenance.

Publishing a grant writes it to the document store and to the vector search
collaborator, then invalidates every cached search before returning, since
any cached ranking may now be missing the new grant. With a background queue
a delayed second sweep follows for results other processes were still
writing to the shared tier.
"""

import dataclasses
from collections.abc import Iterable
from typing import Any

import structlog
from pydantic import TypeAdapter

from grant_matcher.config import settings
from grant_matcher.entities import GrantOpportunity
from grant_matcher.errors import InvalidRequestError, NotFoundError
from grant_matcher.matching import grant_to_attributes
from grant_matcher.matching.vocabulary import validate_state
from grant_matcher.protocols import DocumentStore, EmbeddingProvider, VectorSearchService
from grant_matcher.utils import utc_now

from .background import BackgroundTaskQueue, bulk_operation, delayed_cache_invalidation
from .cache_keys import CacheKeys
from .cache_service import CacheService
from .performance import PerformanceMonitor

logger = structlog.get_logger(__name__)

_GRANT_ADAPTER = TypeAdapter(GrantOpportunity)


def validate_grant(grant: GrantOpportunity) -> None:
    if not grant.id or not grant.id.strip():
        raise InvalidRequestError("id", "grant id is required")
    if not grant.agency or not grant.agency.strip():
        raise InvalidRequestError("agency", "sponsoring agency is required")
    for state in grant.eligible_states:
        validate_state("eligible_states", state)
    for name in ("award_ceiling", "award_floor"):
        value = getattr(grant, name)
        if value is not None and value < 0:
            raise InvalidRequestError(name, "must not be negative")
    if (
        grant.award_floor is not None
        and grant.award_ceiling is not None
        and grant.award_floor > grant.award_ceiling
    ):
        raise InvalidRequestError("award_floor", "must not exceed award_ceiling")


class CatalogService:
    """Publishes and retires grants.

    When an embedding provider is given, vectors are computed here and
    uploaded explicitly; otherwise the vector search backend is expected to
    embed the narrative text itself on ``store_entity``.
    """

    def __init__(
        self,
        store: DocumentStore,
        vector_search: VectorSearchService,
        cache: CacheService | None = None,
        background: BackgroundTaskQueue | None = None,
        embeddings: EmbeddingProvider | None = None,
        monitor: PerformanceMonitor | None = None,
        retention_days: int | None = None,
        invalidation_followup_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._vector_search = vector_search
        self._cache = cache
        self._background = background
        self._embeddings = embeddings
        self._monitor = monitor or PerformanceMonitor()
        self._retention_days = retention_days or settings.grant_retention_days
        self._followup_seconds = (
            invalidation_followup_seconds
            if invalidation_followup_seconds is not None
            else settings.search_invalidation_followup_seconds
        )

    @property
    def retention_seconds(self) -> int:
        return self._retention_days * 24 * 60 * 60

    async def publish_grant(self, grant: GrantOpportunity) -> GrantOpportunity:
        """Store a grant and make it searchable.

        Returns:
            The stored grant, with its vector search handle and creation time
        """
        validate_grant(grant)
        stored = await self._monitor.track("publish_grant", lambda: self._publish(grant), grant_id=grant.id)
        await self._invalidate_searches(f"publish:{stored.id}")
        return stored

    def publish_grants_in_background(self, grants: Iterable[GrantOpportunity], batch_size: int = 10) -> int:
        """Queue a batch publish; searches are invalidated once at the end.

        Returns:
            Number of grants queued

        Raises:
            QueueFullError: If the background queue is at capacity
        """
        if self._background is None:
            raise InvalidRequestError("grants", "bulk publishing requires a background queue")

        batch = list(grants)
        for grant in batch:
            validate_grant(grant)

        process = bulk_operation(batch, self._publish, batch_size=batch_size)

        async def run() -> None:
            await process()
            if self._cache is not None:
                await self._cache.remove_by_pattern(CacheKeys.SEARCH_PATTERN)

        self._background.enqueue(f"bulk_publish:{len(batch)}", run)
        return len(batch)

    async def get_grant(self, agency: str, grant_id: str) -> GrantOpportunity:
        """Load a stored grant, from cache when possible.

        Raises:
            NotFoundError: If the grant does not exist
        """
        if self._cache is None:
            grant = await self._store.get_grant(agency, grant_id)
        else:
            payload = await self._cache.get_or_create(
                CacheKeys.grant(grant_id),
                lambda: self._load_payload(agency, grant_id),
            )
            grant = _GRANT_ADAPTER.validate_python(payload) if payload is not None else None

        if grant is None or grant.agency != agency:
            raise NotFoundError("grant", f"{agency}/{grant_id}")
        return grant

    async def remove_grant(self, agency: str, grant_id: str) -> None:
        """Delete a grant from the store and the vector search collaborator.

        Raises:
            NotFoundError: If the grant does not exist
        """
        grant = await self._store.get_grant(agency, grant_id)
        if grant is None:
            raise NotFoundError("grant", f"{agency}/{grant_id}")

        if grant.entity_id:
            await self._monitor.track(
                "delete_entity",
                lambda: self._vector_search.delete_entity(grant.entity_id),
                grant_id=grant_id,
            )
        await self._store.delete_grant(agency, grant_id)
        logger.info("grant_removed", grant_id=grant_id, agency=agency)

        if self._cache is not None:
            await self._cache.remove(CacheKeys.grant(grant_id))
        await self._invalidate_searches(f"remove:{grant_id}")

    async def _publish(self, grant: GrantOpportunity) -> GrantOpportunity:
        attributes = grant_to_attributes(grant)
        entity_id = await self._monitor.track(
            "store_entity",
            lambda: self._vector_search.store_entity(attributes, grant.embedding_text, name=grant.name),
            grant_id=grant.id,
        )

        if self._embeddings is not None:
            vector = await self._embeddings.encode(grant.embedding_text)
            await self._monitor.track(
                "upload_vector",
                lambda: self._vector_search.upload_vector(entity_id, vector),
                grant_id=grant.id,
            )

        stored = dataclasses.replace(grant, entity_id=entity_id, created_at=grant.created_at or utc_now())
        await self._store.save_grant(stored, ttl_seconds=self.retention_seconds)
        if self._cache is not None:
            await self._cache.remove(CacheKeys.grant(stored.id))

        logger.info("grant_published", grant_id=stored.id, agency=stored.agency, entity_id=entity_id)
        return stored

    async def _load_payload(self, agency: str, grant_id: str) -> dict[str, Any] | None:
        grant = await self._store.get_grant(agency, grant_id)
        if grant is None:
            return None
        return _GRANT_ADAPTER.dump_python(grant, mode="json")

    async def _invalidate_searches(self, reason: str) -> None:
        if self._cache is None:
            return
        await self._cache.remove_by_pattern(CacheKeys.SEARCH_PATTERN)
        if self._background is not None and self._followup_seconds > 0:
            self._background.try_enqueue(
                f"invalidate_searches:{reason}",
                delayed_cache_invalidation(self._cache, CacheKeys.SEARCH_PATTERN, self._followup_seconds),
            )
