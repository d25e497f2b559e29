"""Match result domain entities."""

from dataclasses import dataclass, field
from datetime import datetime

from .grant import GrantOpportunity


@dataclass(frozen=True)
class ScoreBreakdown:
    """Weighted contribution of each signal; the four values sum to the composite."""

    semantic: float = 0.0
    mission_alignment: float = 0.0
    award_amount: float = 0.0
    deadline_proximity: float = 0.0


@dataclass(frozen=True)
class MatchResult:
    """One ranked grant for one query.

    Attributes:
        grant_id: Identifier of the matched grant
        grant: The matched grant
        semantic_similarity: Similarity reported by vector search, in [0, 1]
        composite_score: Weighted score used for ranking, in [0, 1]
        breakdown: Per-signal weighted contributions
        is_eligible: False when a hard constraint is unmet
        unmet_requirements: Human-readable unmet constraints, advisory ones included
        matched_at: When the score was computed
    """

    grant_id: str
    grant: GrantOpportunity
    semantic_similarity: float
    composite_score: float
    breakdown: ScoreBreakdown
    is_eligible: bool
    unmet_requirements: list[str] = field(default_factory=list)
    matched_at: datetime | None = None
