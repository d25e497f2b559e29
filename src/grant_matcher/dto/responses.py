"""Response DTOs for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GrantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    opportunity_number: str
    agency: str
    agency_code: str
    description: str
    applicant_types: list[str]
    funding_categories: list[str]
    eligible_states: list[str]
    award_ceiling: float | None
    award_floor: float | None
    post_date: datetime | None
    close_date: datetime | None
    requires_essay: bool
    funding_instrument: str
    application_url: str
    entity_id: str | None
    created_at: datetime | None


class ScoreBreakdownResponse(BaseModel):
    """Weighted contribution of each signal; they sum to the composite score."""

    model_config = ConfigDict(from_attributes=True)

    semantic: float
    mission_alignment: float
    award_amount: float
    deadline_proximity: float


class MatchResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    grant_id: str
    grant: GrantResponse
    semantic_similarity: float = Field(..., ge=0.0, le=1.0)
    composite_score: float = Field(..., ge=0.0, le=1.0)
    breakdown: ScoreBreakdownResponse
    is_eligible: bool
    unmet_requirements: list[str]
    matched_at: datetime | None


class SearchMetadataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    processing_time_ms: float
    candidates_considered: int
    eligible_count: int
    search_strategy: str
    from_cache: bool


class SearchGrantsResponse(BaseModel):
    """One page of ranked matches.

    An empty ``matches`` list always means "no grants matched"; an
    unavailable search backend is reported as HTTP 503 instead.
    """

    model_config = ConfigDict(from_attributes=True)

    matches: list[MatchResultResponse]
    total_count: int
    metadata: SearchMetadataResponse


class EligibilityCheckResponse(BaseModel):
    applicant_id: str
    grant_id: str
    is_eligible: bool
    unmet_requirements: list[str]


class ApplicantProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    organization_name: str
    organization_type: str
    ein: str
    applicant_types: list[str]
    state: str
    city: str
    funding_categories: list[str]
    service_areas: list[str]
    populations_served: list[str]
    annual_budget: float
    typical_project_budget: float | None
    mission_statement: str
    profile_summary: str
    created_at: datetime | None
    last_modified: datetime | None


class ConversationResponse(BaseModel):
    reply: str
    profile_complete: bool
    extracted_attributes: dict[str, Any]
    profile: ApplicantProfileResponse


class CacheStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    evictions: int = Field(..., ge=0)
    current_entries: int = Field(..., ge=0)
    distributed_errors: int = Field(..., ge=0)
    hit_rate: float = Field(..., ge=0.0, le=1.0)


class OperationStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    count: int
    average_duration_ms: float
    max_duration_ms: float
    min_duration_ms: float
    slow_count: int
    failure_count: int


class PerformanceStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_operations: int
    slow_operations: int
    failed_operations: int
    average_duration_ms: float
    max_duration_ms: float
    min_duration_ms: float
    operation_breakdown: dict[str, OperationStatsResponse]


class BackgroundQueueResponse(BaseModel):
    running: bool
    workers: int
    capacity: int
    pending: int
    completed: int
    failed: int
    rejected: int


class ClearCacheResponse(BaseModel):
    pattern: str
    removed: int = Field(..., ge=0)


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'degraded'")
    cache_healthy: bool = Field(..., description="Whether the cache store is usable")
    distributed_cache: bool = Field(..., description="Whether a distributed tier is configured")
    background_running: bool
    conversation_enabled: bool
