"""Grant opportunity domain entity."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class GrantOpportunity:
    """A fundable opportunity and its eligibility constraints.

    An empty allow-list (applicant types, funding categories, eligible
    states) means the grant is unconstrained on that dimension.

    Attributes:
        id: Grant identifier
        name: Opportunity title
        agency: Sponsoring body; the document store partition key
        natural_language_summary: Text embedded for vector search
        award_ceiling: Maximum award amount
        award_floor: Minimum award amount
        close_date: Application deadline (UTC)
        entity_id: Handle of the record in the vector search service
    """

    id: str
    name: str = ""
    opportunity_number: str = ""
    agency: str = ""
    agency_code: str = ""
    description: str = ""
    natural_language_summary: str = ""
    applicant_types: list[str] = field(default_factory=list)
    funding_categories: list[str] = field(default_factory=list)
    eligible_states: list[str] = field(default_factory=list)
    award_ceiling: float | None = None
    award_floor: float | None = None
    post_date: datetime | None = None
    close_date: datetime | None = None
    requires_essay: bool = False
    funding_instrument: str = ""
    cfda_number: str = ""
    application_url: str = ""
    keywords: list[str] = field(default_factory=list)
    entity_id: str | None = None
    created_at: datetime | None = None

    @property
    def award_amount(self) -> float:
        """Largest known award amount, 0 when the grant states none."""
        if self.award_ceiling is not None:
            return self.award_ceiling
        if self.award_floor is not None:
            return self.award_floor
        return 0.0

    @property
    def embedding_text(self) -> str:
        return self.natural_language_summary or self.description or self.name
