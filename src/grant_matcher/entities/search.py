"""Search request/response domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .match import MatchResult


class PredicateOperator(str, Enum):
    """Operators understood by the vector search attribute predicate."""

    EQUAL = "Equal"
    CONTAINS_OR_EMPTY = "ContainsOrEmpty"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"


@dataclass(frozen=True)
class AttributePredicate:
    """One conjunct of the attribute filter sent alongside a vector query.

    For ``CONTAINS_OR_EMPTY`` the value may be a list; the predicate then
    holds when the field is empty or contains any of the values.
    """

    field_path: str
    operator: PredicateOperator
    value: Any


@dataclass(frozen=True)
class SearchCandidate:
    """Raw hit returned by the vector search collaborator."""

    entity_id: str
    similarity: float
    attributes: dict[str, Any] = field(default_factory=dict)
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class SearchFilters:
    min_award_amount: float | None = None
    max_award_amount: float | None = None
    deadline_after: datetime | None = None
    deadline_before: datetime | None = None
    requires_essay: bool | None = None


@dataclass(frozen=True)
class SearchRequest:
    """A grant search for one applicant.

    Attributes:
        applicant_id: Profile whose eligibility is evaluated
        query: Free-text query; falls back to the profile narrative
        offset: Page start within the ranked list
        limit: Page size
        min_similarity: Minimum semantic similarity, in [0, 1]
        filters: Optional hard filters pushed down to vector search
        eligible_only: Drop ineligible matches from the page
    """

    applicant_id: str
    query: str | None = None
    offset: int = 0
    limit: int = 20
    min_similarity: float = 0.6
    filters: SearchFilters = field(default_factory=SearchFilters)
    eligible_only: bool = False


@dataclass(frozen=True)
class SearchMetadata:
    processing_time_ms: float = 0.0
    candidates_considered: int = 0
    eligible_count: int = 0
    search_strategy: str = "hybrid (filters + vector similarity)"
    from_cache: bool = False


@dataclass(frozen=True)
class SearchResponse:
    """Ranked matches for one page plus the total candidate count."""

    matches: list[MatchResult] = field(default_factory=list)
    total_count: int = 0
    metadata: SearchMetadata = field(default_factory=SearchMetadata)
