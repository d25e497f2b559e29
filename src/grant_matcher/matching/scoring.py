"""Composite scoring and ranking.

composite = w_semantic * similarity
          + w_mission  * mission_alignment
          + w_award    * normalized_award
          + w_deadline * deadline_factor

Every component is in [0, 1] and the weights sum to 1, so the composite is
in [0, 1]. Eligibility is attached to the result but never changes the score.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from grant_matcher.entities import ApplicantProfile, GrantOpportunity, MatchResult, ScoreBreakdown
from grant_matcher.utils import ensure_utc, utc_now

from .eligibility import DEFAULT_ELIGIBILITY, EligibilityConfig, check_eligibility
from .vocabulary import normalize_tags

if TYPE_CHECKING:
    from grant_matcher.config import Settings

NEUTRAL_MISSION_ALIGNMENT = 0.5

_FAR_FUTURE = datetime.max


@dataclass(frozen=True)
class ScoringConfig:
    """Weights and tuning constants for the composite score."""

    semantic_weight: float = 0.6
    mission_weight: float = 0.1
    award_weight: float = 0.2
    deadline_weight: float = 0.1
    award_reference_cap: float = 500_000.0
    deadline_window_days: int = 30
    near_deadline_factor: float = 0.5
    eligibility: EligibilityConfig = field(default_factory=lambda: DEFAULT_ELIGIBILITY)

    def __post_init__(self) -> None:
        total = self.semantic_weight + self.mission_weight + self.award_weight + self.deadline_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1, got {total:.4f}")
        if self.award_reference_cap <= 0:
            raise ValueError("award_reference_cap must be positive")
        if not 0 <= self.near_deadline_factor <= 1:
            raise ValueError("near_deadline_factor must be between 0 and 1")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ScoringConfig":
        return cls(
            semantic_weight=settings.weight_semantic,
            mission_weight=settings.weight_mission,
            award_weight=settings.weight_award,
            deadline_weight=settings.weight_deadline,
            award_reference_cap=settings.award_reference_cap,
            deadline_window_days=settings.deadline_window_days,
            near_deadline_factor=settings.near_deadline_factor,
            eligibility=EligibilityConfig(
                min_award_budget_ratio=settings.min_award_budget_ratio,
                max_award_budget_multiple=settings.max_award_budget_multiple,
            ),
        )


DEFAULT_SCORING = ScoringConfig()


def mission_alignment(applicant: ApplicantProfile, grant: GrantOpportunity) -> float:
    """Overlap of funding categories; neutral when either side has none."""
    applicant_tags = normalize_tags(applicant.funding_categories)
    grant_tags = normalize_tags(grant.funding_categories)
    if not applicant_tags or not grant_tags:
        return NEUTRAL_MISSION_ALIGNMENT
    return len(applicant_tags & grant_tags) / max(len(applicant_tags), len(grant_tags))


def normalized_award(grant: GrantOpportunity, reference_cap: float) -> float:
    return max(0.0, min(grant.award_amount / reference_cap, 1.0))


def deadline_factor(
    grant: GrantOpportunity,
    now: datetime,
    window_days: int,
    near_factor: float,
) -> float:
    if grant.close_date is None:
        return 1.0
    if ensure_utc(grant.close_date) - now < timedelta(days=window_days):
        return near_factor
    return 1.0


def score(
    applicant: ApplicantProfile,
    grant: GrantOpportunity,
    semantic_similarity: float,
    config: ScoringConfig = DEFAULT_SCORING,
    now: datetime | None = None,
) -> MatchResult:
    """Score one grant for one applicant.

    Args:
        applicant: The applicant profile
        grant: The candidate grant
        semantic_similarity: Similarity from vector search; clamped to [0, 1]
        config: Weights and tuning constants
        now: Reference time (defaults to UTC now)

    Returns:
        MatchResult with the composite score, its breakdown and the
        eligibility verdict
    """
    now = ensure_utc(now) if now is not None else utc_now()
    similarity = max(0.0, min(float(semantic_similarity), 1.0))
    verdict = check_eligibility(applicant, grant, config.eligibility, now=now)

    breakdown = ScoreBreakdown(
        semantic=config.semantic_weight * similarity,
        mission_alignment=config.mission_weight * mission_alignment(applicant, grant),
        award_amount=config.award_weight * normalized_award(grant, config.award_reference_cap),
        deadline_proximity=config.deadline_weight
        * deadline_factor(grant, now, config.deadline_window_days, config.near_deadline_factor),
    )
    composite = (
        breakdown.semantic
        + breakdown.mission_alignment
        + breakdown.award_amount
        + breakdown.deadline_proximity
    )

    return MatchResult(
        grant_id=grant.id,
        grant=grant,
        semantic_similarity=similarity,
        composite_score=max(0.0, min(composite, 1.0)),
        breakdown=breakdown,
        is_eligible=verdict.is_eligible,
        unmet_requirements=verdict.unmet,
        matched_at=now,
    )


def ranking_key(match: MatchResult) -> tuple[float, float, datetime, str]:
    """Sort key: composite desc, similarity desc, soonest deadline, grant id."""
    close_date = match.grant.close_date
    deadline = ensure_utc(close_date).replace(tzinfo=None) if close_date is not None else _FAR_FUTURE
    return (-match.composite_score, -match.semantic_similarity, deadline, match.grant_id)


def rank(matches: list[MatchResult]) -> list[MatchResult]:
    return sorted(matches, key=ranking_key)
