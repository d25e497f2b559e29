"""Domain entities for internal representation.

These are plain dataclasses used by the matching functions, services and
repositories. They are NOT used for HTTP contracts - use the DTOs from the
dto package for that.

Entities should have:
- No JSON serialization logic
- No Pydantic validation
- No external dependencies
"""

from .applicant import ApplicantProfile
from .cache_entry import CacheEntry, CacheStatistics
from .grant import GrantOpportunity
from .match import MatchResult, ScoreBreakdown
from .metrics import OperationStats, PerformanceStatistics
from .search import (
    AttributePredicate,
    PredicateOperator,
    SearchCandidate,
    SearchFilters,
    SearchMetadata,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    "ApplicantProfile",
    "AttributePredicate",
    "CacheEntry",
    "CacheStatistics",
    "GrantOpportunity",
    "MatchResult",
    "OperationStats",
    "PerformanceStatistics",
    "PredicateOperator",
    "ScoreBreakdown",
    "SearchCandidate",
    "SearchFilters",
    "SearchMetadata",
    "SearchRequest",
    "SearchResponse",
]
