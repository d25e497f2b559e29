"""Grant Matcher - hybrid grant matching with eligibility rules and semantic ranking.

This package matches applicant organizations against a catalog of grant
opportunities: hard eligibility constraints are pushed down to a vector
search collaborator as an attribute predicate, candidates are scored with a
weighted composite of semantic similarity, mission alignment, award size and
deadline proximity, and whole ranked results are cached by fingerprint.

Layers:
    - protocols: Interface contracts for the external collaborators
    - entities: Domain models (internal)
    - matching: Pure eligibility, scoring and predicate functions
    - services: Cache store, instrumentation, background queue, orchestration
    - repositories: Collaborator implementations (Redis, HTTP, embeddings)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)

Usage:
    ```python
    from grant_matcher.services import CacheService, GrantSearchService, ProfileService

    cache = CacheService.create()
    search = GrantSearchService(vector_search, ProfileService(store, cache=cache), cache=cache)
    response = await search.find_grants(SearchRequest(applicant_id="org-1"))
    ```

For HTTP API:
    ```python
    from grant_matcher.api.app import app
    ```
"""

from grant_matcher.config import get_settings, settings
from grant_matcher.entities import (
    ApplicantProfile,
    GrantOpportunity,
    MatchResult,
    SearchRequest,
    SearchResponse,
)
from grant_matcher.errors import (
    CollaboratorUnavailableError,
    GrantMatcherError,
    InvalidRequestError,
    NotFoundError,
    RateLimitedError,
)
from grant_matcher.matching import check_eligibility, rank, score
from grant_matcher.services import CacheService, GrantSearchService, PerformanceMonitor

__all__ = [
    # Configuration
    "settings",
    "get_settings",
    # Entities
    "ApplicantProfile",
    "GrantOpportunity",
    "MatchResult",
    "SearchRequest",
    "SearchResponse",
    # Errors
    "GrantMatcherError",
    "InvalidRequestError",
    "NotFoundError",
    "CollaboratorUnavailableError",
    "RateLimitedError",
    # Matching
    "check_eligibility",
    "score",
    "rank",
    # Services
    "CacheService",
    "GrantSearchService",
    "PerformanceMonitor",
]
