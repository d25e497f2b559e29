"""Request DTOs for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from grant_matcher.config import settings


class SearchFiltersRequest(BaseModel):
    """Optional hard filters pushed down to vector search."""

    min_award_amount: float | None = Field(None, ge=0.0, description="Minimum award ceiling")
    max_award_amount: float | None = Field(None, ge=0.0, description="Maximum award ceiling")
    deadline_after: datetime | None = Field(None, description="Only grants closing on or after this time")
    deadline_before: datetime | None = Field(None, description="Only grants closing on or before this time")
    requires_essay: bool | None = Field(None, description="Match the essay requirement exactly")


class SearchGrantsRequest(BaseModel):
    """Request DTO for a grant search.

    The handler converts this to a ``SearchRequest`` entity.
    """

    applicant_id: str = Field(..., min_length=1, description="Applicant profile to match for")
    query: str | None = Field(
        None,
        description="Free-text query; the profile summary is used when omitted",
    )
    offset: int = Field(0, ge=0)
    limit: int = Field(20, ge=1, le=settings.max_page_size)
    min_similarity: float = Field(settings.default_min_similarity, ge=0.0, le=1.0)
    filters: SearchFiltersRequest = Field(default_factory=SearchFiltersRequest)
    eligible_only: bool = Field(False, description="Drop ineligible matches instead of explaining them")


class GrantPayload(BaseModel):
    """A grant opportunity as submitted by the catalog loader or an admin."""

    id: str = Field(..., min_length=1)
    name: str = ""
    opportunity_number: str = ""
    agency: str = Field(..., min_length=1, description="Sponsoring agency (partition key)")
    agency_code: str = ""
    description: str = ""
    natural_language_summary: str = ""
    applicant_types: list[str] = Field(default_factory=list)
    funding_categories: list[str] = Field(default_factory=list)
    eligible_states: list[str] = Field(default_factory=list)
    award_ceiling: float | None = Field(None, ge=0.0)
    award_floor: float | None = Field(None, ge=0.0)
    post_date: datetime | None = None
    close_date: datetime | None = None
    requires_essay: bool = False
    funding_instrument: str = ""
    cfda_number: str = ""
    application_url: str = ""
    keywords: list[str] = Field(default_factory=list)


class EligibilityCheckRequest(BaseModel):
    """Check one grant against one applicant.

    Either pass the grant inline or reference a stored one by agency and id.
    """

    applicant_id: str = Field(..., min_length=1)
    grant: GrantPayload | None = None
    agency: str | None = None
    grant_id: str | None = None

    @model_validator(mode="after")
    def _grant_reference(self) -> "EligibilityCheckRequest":
        if self.grant is None and not (self.agency and self.grant_id):
            raise ValueError("provide either grant or both agency and grant_id")
        return self


class ApplicantProfilePayload(BaseModel):
    """Applicant profile body for PUT /profiles/{applicant_id}."""

    owner_id: str = ""
    organization_name: str = ""
    organization_type: str = ""
    ein: str = ""
    applicant_types: list[str] = Field(default_factory=list)
    state: str = Field("", max_length=2)
    city: str = ""
    funding_categories: list[str] = Field(default_factory=list)
    service_areas: list[str] = Field(default_factory=list)
    populations_served: list[str] = Field(default_factory=list)
    annual_budget: float = Field(0.0, ge=0.0)
    typical_project_budget: float | None = Field(None, ge=0.0)
    mission_statement: str = ""
    profile_summary: str = ""


class ConversationMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, description="One message from the applicant")
