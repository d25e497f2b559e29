"""Applicant profile domain entity."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ApplicantProfile:
    """An organization seeking funding.

    Tag lists (applicant types, funding categories) and the state are either
    empty, meaning "not stated", or members of the vocabularies in
    ``grant_matcher.matching.vocabulary``. The matching engine never mutates
    a profile.

    Attributes:
        id: Profile identifier
        owner_id: Owning user; the document store partition key
        organization_name: Legal name of the organization
        organization_type: Free-form type, e.g. "501(c)(3)"
        applicant_types: Eligibility category tags, e.g. ["nonprofit"]
        state: Two-letter state or territory code
        funding_categories: Funding focus tags, e.g. ["education"]
        annual_budget: Organization-wide annual budget
        typical_project_budget: Usual size of a single funded project
        mission_statement: Mission text
        profile_summary: Narrative used as the semantic query by default
    """

    id: str
    owner_id: str = ""
    organization_name: str = ""
    organization_type: str = ""
    ein: str = ""
    applicant_types: list[str] = field(default_factory=list)
    state: str = ""
    city: str = ""
    funding_categories: list[str] = field(default_factory=list)
    service_areas: list[str] = field(default_factory=list)
    populations_served: list[str] = field(default_factory=list)
    annual_budget: float = 0.0
    typical_project_budget: float | None = None
    mission_statement: str = ""
    profile_summary: str = ""
    created_at: datetime | None = None
    last_modified: datetime | None = None

    @property
    def narrative(self) -> str:
        """Text used as the semantic query when a search supplies none."""
        return self.profile_summary or self.mission_statement
