"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import (
    ApplicantProfilePayload,
    ConversationMessageRequest,
    EligibilityCheckRequest,
    GrantPayload,
    SearchFiltersRequest,
    SearchGrantsRequest,
)
from .responses import (
    ApplicantProfileResponse,
    BackgroundQueueResponse,
    CacheStatsResponse,
    ClearCacheResponse,
    ConversationResponse,
    EligibilityCheckResponse,
    GrantResponse,
    HealthCheckResponse,
    MatchResultResponse,
    OperationStatsResponse,
    PerformanceStatsResponse,
    ScoreBreakdownResponse,
    SearchGrantsResponse,
    SearchMetadataResponse,
)

__all__ = [
    "ApplicantProfilePayload",
    "ApplicantProfileResponse",
    "BackgroundQueueResponse",
    "CacheStatsResponse",
    "ClearCacheResponse",
    "ConversationMessageRequest",
    "ConversationResponse",
    "EligibilityCheckRequest",
    "EligibilityCheckResponse",
    "GrantPayload",
    "GrantResponse",
    "HealthCheckResponse",
    "MatchResultResponse",
    "OperationStatsResponse",
    "PerformanceStatsResponse",
    "ScoreBreakdownResponse",
    "SearchFiltersRequest",
    "SearchGrantsRequest",
    "SearchGrantsResponse",
    "SearchMetadataResponse",
]
