"""Grant search orchestration.

A search resolves the query text, looks up the fingerprint in the cache and,
on a miss, runs the hybrid pipeline:

    eligibility rules + filters -> attribute predicate
    query text + predicate      -> vector search collaborator
    candidate attribute bags    -> GrantOpportunity
    grant + similarity          -> eligibility verdict + composite score
    matches                     -> deterministic ranking

The whole ranked candidate pool is cached, not just the requested page, so
paging through results and toggling ``eligible_only`` are served from one
cache entry.
"""

import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from pydantic import TypeAdapter

from grant_matcher.config import settings
from grant_matcher.entities import (
    ApplicantProfile,
    GrantOpportunity,
    MatchResult,
    SearchCandidate,
    SearchMetadata,
    SearchRequest,
    SearchResponse,
)
from grant_matcher.errors import CollaboratorUnavailableError, InvalidRequestError
from grant_matcher.matching import (
    EligibilityVerdict,
    ScoringConfig,
    build_predicate,
    check_eligibility,
    grant_from_candidate,
    rank,
    score,
)
from grant_matcher.protocols import VectorSearchService
from grant_matcher.utils import utc_now

from .cache_keys import CacheKeys
from .cache_service import CacheService
from .performance import PerformanceMonitor
from .profile_service import ProfileService

logger = structlog.get_logger(__name__)

_RESPONSE_ADAPTER = TypeAdapter(SearchResponse)


def validate_search_request(request: SearchRequest, max_page_size: int) -> None:
    """Raise InvalidRequestError naming the first malformed field."""
    if not request.applicant_id or not request.applicant_id.strip():
        raise InvalidRequestError("applicant_id", "applicant id is required")
    if request.offset < 0:
        raise InvalidRequestError("offset", "must not be negative")
    if request.limit < 1 or request.limit > max_page_size:
        raise InvalidRequestError("limit", f"must be between 1 and {max_page_size}")
    if not 0.0 <= request.min_similarity <= 1.0:
        raise InvalidRequestError("min_similarity", "must be between 0 and 1")

    filters = request.filters
    if filters.min_award_amount is not None and filters.min_award_amount < 0:
        raise InvalidRequestError("filters.min_award_amount", "must not be negative")
    if (
        filters.min_award_amount is not None
        and filters.max_award_amount is not None
        and filters.min_award_amount > filters.max_award_amount
    ):
        raise InvalidRequestError("filters.max_award_amount", "must not be below min_award_amount")
    if (
        filters.deadline_after is not None
        and filters.deadline_before is not None
        and filters.deadline_after > filters.deadline_before
    ):
        raise InvalidRequestError("filters.deadline_before", "must not be before deadline_after")


class GrantSearchService:
    """Search orchestrator.

    Example:
        ```python
        service = GrantSearchService(vector_search, profiles, cache=cache)
        response = await service.find_grants(SearchRequest(applicant_id="org-1"))
        for match in response.matches:
            print(match.grant.name, match.composite_score, match.unmet_requirements)
        ```
    """

    def __init__(
        self,
        vector_search: VectorSearchService,
        profiles: ProfileService,
        cache: CacheService | None = None,
        monitor: PerformanceMonitor | None = None,
        scoring: ScoringConfig | None = None,
        candidate_pool_size: int | None = None,
        max_page_size: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            vector_search: Semantic search collaborator
            profiles: Applicant profile access
            cache: Cache store; searches are not cached without one
            monitor: Performance monitor; a private one is created if omitted
            scoring: Weights and thresholds. Defaults to settings.
            candidate_pool_size: Candidates requested from vector search per query
            max_page_size: Upper bound on ``SearchRequest.limit``
            clock: Source of "now" for deadline checks
        """
        self._vector_search = vector_search
        self._profiles = profiles
        self._cache = cache
        self._monitor = monitor or PerformanceMonitor()
        self._scoring = scoring or ScoringConfig.from_settings(settings)
        self._candidate_pool_size = candidate_pool_size or settings.candidate_pool_size
        self._max_page_size = max_page_size or settings.max_page_size
        self._clock = clock

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    async def find_grants(self, request: SearchRequest) -> SearchResponse:
        """Run one grant search.

        Args:
            request: Applicant, query text, paging and hard filters

        Returns:
            One page of ranked matches; ``total_count`` counts the whole
            ranked list (after ``eligible_only``)

        Raises:
            InvalidRequestError: If a request field is malformed
            NotFoundError: If the applicant profile does not exist
            CollaboratorUnavailableError: If vector search could not be reached
            RateLimitedError: If vector search throttled the call
        """
        validate_search_request(request, self._max_page_size)
        started = time.perf_counter()
        return await self._monitor.track(
            "find_grants",
            lambda: self._find_grants(request, started),
            warn_threshold_ms=settings.search_slow_threshold_ms,
            applicant_id=request.applicant_id,
        )

    async def check_eligibility(self, applicant_id: str, grant: GrantOpportunity) -> EligibilityVerdict:
        """Evaluate one grant against a stored applicant profile."""
        applicant = await self._profiles.get_applicant(applicant_id)
        return check_eligibility(applicant, grant, self._scoring.eligibility, now=self._clock())

    async def invalidate_search_cache(self, pattern: str = CacheKeys.SEARCH_PATTERN) -> int:
        """Drop cached searches; returns the number of keys removed."""
        if self._cache is None:
            return 0
        removed = await self._cache.remove_by_pattern(pattern)
        logger.info("search_cache_invalidated", pattern=pattern, removed=removed)
        return removed

    async def _find_grants(self, request: SearchRequest, started: float) -> SearchResponse:
        applicant: ApplicantProfile | None = None
        query = (request.query or "").strip()
        if not query:
            applicant = await self._profiles.get_applicant(request.applicant_id)
            query = applicant.narrative.strip()
            if not query:
                raise InvalidRequestError(
                    "query", "no query given and the applicant profile has no narrative summary"
                )

        pool_size = max(self._candidate_pool_size, request.offset + request.limit)

        if self._cache is None:
            if applicant is None:
                applicant = await self._profiles.get_applicant(request.applicant_id)
            ranked = await self._run_pipeline(applicant, query, request, pool_size)
            return self._page(ranked, request, started, from_cache=False)

        key = CacheKeys.search(
            query,
            pool_size,
            request.min_similarity,
            applicant_id=request.applicant_id,
            filters=request.filters,
        )
        computed = False

        async def factory() -> dict[str, Any]:
            nonlocal applicant, computed
            if applicant is None:
                applicant = await self._profiles.get_applicant(request.applicant_id)
            response = await self._run_pipeline(applicant, query, request, pool_size)
            computed = True
            return _RESPONSE_ADAPTER.dump_python(response, mode="json")

        payload = await self._cache.get_or_create(
            key,
            factory,
            absolute_ttl=settings.search_cache_absolute_ttl,
            sliding_ttl=settings.search_cache_sliding_ttl,
        )
        ranked = _RESPONSE_ADAPTER.validate_python(payload)
        if not computed:
            logger.debug("search_served_from_cache", key=key)
        return self._page(ranked, request, started, from_cache=not computed)

    async def _run_pipeline(
        self,
        applicant: ApplicantProfile,
        query: str,
        request: SearchRequest,
        pool_size: int,
    ) -> SearchResponse:
        predicate = build_predicate(applicant, request.filters)
        candidates = await self._search(query, predicate, request.min_similarity, pool_size)

        now = self._clock()
        matches: list[MatchResult] = []
        for candidate in candidates:
            grant = self._to_grant(candidate)
            if grant is None:
                continue
            matches.append(score(applicant, grant, candidate.similarity, self._scoring, now=now))

        ranked = rank(matches)
        eligible_count = sum(1 for m in ranked if m.is_eligible)
        logger.info(
            "search_pipeline_completed",
            applicant_id=applicant.id,
            predicate_terms=len(predicate),
            candidates=len(candidates),
            scored=len(ranked),
            eligible=eligible_count,
        )
        return SearchResponse(
            matches=ranked,
            total_count=len(ranked),
            metadata=SearchMetadata(
                candidates_considered=len(candidates),
                eligible_count=eligible_count,
            ),
        )

    async def _search(
        self,
        query: str,
        predicate: list,
        min_similarity: float,
        limit: int,
    ) -> list[SearchCandidate]:
        async def call() -> list[SearchCandidate]:
            try:
                return await self._vector_search.search(query, predicate, min_similarity, limit)
            except (TimeoutError, ConnectionError) as e:
                raise CollaboratorUnavailableError("vector_search", str(e) or type(e).__name__) from e

        return await self._monitor.track("vector_search", call, limit=limit)

    @staticmethod
    def _to_grant(candidate: SearchCandidate) -> GrantOpportunity | None:
        try:
            return grant_from_candidate(candidate)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(
                "malformed_candidate_skipped",
                entity_id=getattr(candidate, "entity_id", None),
                error=str(e),
            )
            return None

    @staticmethod
    def _page(
        ranked: SearchResponse,
        request: SearchRequest,
        started: float,
        from_cache: bool,
    ) -> SearchResponse:
        matches = ranked.matches
        if request.eligible_only:
            matches = [m for m in matches if m.is_eligible]

        return SearchResponse(
            matches=matches[request.offset : request.offset + request.limit],
            total_count=len(matches),
            metadata=SearchMetadata(
                processing_time_ms=round((time.perf_counter() - started) * 1000, 2),
                candidates_considered=ranked.metadata.candidates_considered,
                eligible_count=ranked.metadata.eligible_count,
                search_strategy=ranked.metadata.search_strategy,
                from_cache=from_cache,
            ),
        )
