"""Hard eligibility rules.

``check_eligibility`` evaluates every constraint independently and returns
the verdict with a human-readable reason per unmet constraint. Budget
capacity checks are advisory: they are listed as unmet but never make an
applicant ineligible on their own.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple

from grant_matcher.entities import ApplicantProfile, GrantOpportunity
from grant_matcher.utils import ensure_utc, utc_now

from .vocabulary import normalize_tag, normalize_tags


@dataclass(frozen=True)
class EligibilityConfig:
    """Thresholds for the advisory budget checks.

    Attributes:
        min_award_budget_ratio: Flag when the typical project budget is below
            this fraction of the grant's minimum award
        max_award_budget_multiple: Flag when the grant's maximum award exceeds
            this multiple of the annual budget
    """

    min_award_budget_ratio: float = 0.5
    max_award_budget_multiple: float = 3.0


DEFAULT_ELIGIBILITY = EligibilityConfig()


class EligibilityVerdict(NamedTuple):
    is_eligible: bool
    unmet: list[str]


def _format_amount(amount: float) -> str:
    return f"${amount:,.0f}"


def _overlaps(applicant_tags: list[str], grant_tags: list[str]) -> bool:
    return bool(normalize_tags(applicant_tags) & normalize_tags(grant_tags))


def check_eligibility(
    applicant: ApplicantProfile,
    grant: GrantOpportunity,
    config: EligibilityConfig = DEFAULT_ELIGIBILITY,
    now: datetime | None = None,
) -> EligibilityVerdict:
    """Evaluate an applicant against a grant's constraints.

    An empty allow-list on the grant always passes. Applicant type and
    funding category checks also pass when the applicant states no tags;
    the state check fails when the grant restricts states and the
    applicant's state is not among them.

    Args:
        applicant: The applicant profile
        grant: The grant opportunity
        config: Advisory budget thresholds
        now: Reference time for the deadline check (defaults to UTC now)

    Returns:
        EligibilityVerdict(is_eligible, unmet)
    """
    now = ensure_utc(now) if now is not None else utc_now()
    hard: list[str] = []
    advisory: list[str] = []

    if grant.applicant_types and applicant.applicant_types:
        if not _overlaps(applicant.applicant_types, grant.applicant_types):
            hard.append(f"Organization type must be one of: {', '.join(grant.applicant_types)}")

    if grant.eligible_states:
        states = {normalize_tag(s) for s in grant.eligible_states}
        if normalize_tag(applicant.state) not in states:
            hard.append(f"Organization must be located in: {', '.join(grant.eligible_states)}")

    if grant.funding_categories and applicant.funding_categories:
        if not _overlaps(applicant.funding_categories, grant.funding_categories):
            hard.append(f"Funding focus must align with: {', '.join(grant.funding_categories)}")

    if grant.award_floor is not None and applicant.typical_project_budget is not None:
        if applicant.typical_project_budget < grant.award_floor * config.min_award_budget_ratio:
            advisory.append(
                "Typical project budget may be too small for this grant "
                f"(minimum award: {_format_amount(grant.award_floor)})"
            )

    if grant.award_ceiling is not None and applicant.annual_budget > 0:
        if grant.award_ceiling > applicant.annual_budget * config.max_award_budget_multiple:
            advisory.append(
                "Grant size may exceed organizational capacity "
                f"(award up to {_format_amount(grant.award_ceiling)})"
            )

    if grant.close_date is not None and ensure_utc(grant.close_date) < now:
        hard.append(f"Deadline has passed ({grant.close_date:%b %d, %Y})")

    return EligibilityVerdict(is_eligible=not hard, unmet=hard + advisory)
