"""FastAPI application for the grant matching engine."""

from typing import Any

from fastapi import FastAPI, Query, status
from fastapi.middleware.cors import CORSMiddleware

from grant_matcher.config import settings
from grant_matcher.dto import (
    ApplicantProfilePayload,
    ApplicantProfileResponse,
    BackgroundQueueResponse,
    CacheStatsResponse,
    ClearCacheResponse,
    ConversationMessageRequest,
    ConversationResponse,
    EligibilityCheckRequest,
    EligibilityCheckResponse,
    GrantPayload,
    GrantResponse,
    HealthCheckResponse,
    PerformanceStatsResponse,
    SearchGrantsRequest,
    SearchGrantsResponse,
)

from .dependencies import DiagnosticsHandlerDep, MatchingHandlerDep, ServiceContainer, make_lifespan

API_VERSION = "0.1.0"


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Create the application.

    Args:
        container: Prebuilt services; built from settings at startup if None.
    """
    app = FastAPI(
        title="Grant Matcher API",
        description="Hybrid grant matching: eligibility rules plus semantic ranking",
        version=API_VERSION,
        lifespan=make_lifespan(container),
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Grant Matcher API",
            "version": API_VERSION,
            "endpoints": {
                "search": "/matches/search",
                "eligibility": "/eligibility/check",
                "grants": "/grants",
                "profiles": "/profiles/{applicant_id}",
                "diagnostics": "/diagnostics",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: DiagnosticsHandlerDep) -> HealthCheckResponse:
        return await handler.health_check()

    @app.post("/matches/search", response_model=SearchGrantsResponse)
    async def search_grants(request: SearchGrantsRequest, handler: MatchingHandlerDep) -> SearchGrantsResponse:
        """Rank grants for an applicant.

        Ineligible grants are returned with their unmet requirements unless
        ``eligible_only`` is set.
        """
        return await handler.search(request)

    @app.post("/eligibility/check", response_model=EligibilityCheckResponse)
    async def check_eligibility(
        request: EligibilityCheckRequest,
        handler: MatchingHandlerDep,
    ) -> EligibilityCheckResponse:
        return await handler.check_eligibility(request)

    @app.post("/grants", response_model=GrantResponse, status_code=status.HTTP_201_CREATED)
    async def publish_grant(payload: GrantPayload, handler: MatchingHandlerDep) -> GrantResponse:
        return await handler.publish_grant(payload)

    @app.delete("/grants/{agency}/{grant_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def remove_grant(agency: str, grant_id: str, handler: MatchingHandlerDep) -> None:
        await handler.remove_grant(agency, grant_id)

    @app.get("/profiles/{applicant_id}", response_model=ApplicantProfileResponse)
    async def get_profile(applicant_id: str, handler: MatchingHandlerDep) -> ApplicantProfileResponse:
        return await handler.get_profile(applicant_id)

    @app.put("/profiles/{applicant_id}", response_model=ApplicantProfileResponse)
    async def save_profile(
        applicant_id: str,
        payload: ApplicantProfilePayload,
        handler: MatchingHandlerDep,
    ) -> ApplicantProfileResponse:
        return await handler.save_profile(applicant_id, payload)

    @app.post("/profiles/{applicant_id}/conversation", response_model=ConversationResponse)
    async def converse(
        applicant_id: str,
        request: ConversationMessageRequest,
        handler: MatchingHandlerDep,
    ) -> ConversationResponse:
        return await handler.converse(applicant_id, request)

    @app.get("/diagnostics/cache-stats", response_model=CacheStatsResponse)
    async def cache_stats(handler: DiagnosticsHandlerDep) -> CacheStatsResponse:
        return await handler.cache_stats()

    @app.get("/diagnostics/performance-stats", response_model=PerformanceStatsResponse)
    async def performance_stats(handler: DiagnosticsHandlerDep) -> PerformanceStatsResponse:
        return await handler.performance_stats()

    @app.post("/diagnostics/performance-stats/reset")
    async def reset_performance_stats(handler: DiagnosticsHandlerDep) -> dict:
        return await handler.reset_performance_stats()

    @app.post("/diagnostics/clear-cache", response_model=ClearCacheResponse)
    async def clear_cache(
        handler: DiagnosticsHandlerDep,
        pattern: str = Query("*", min_length=1, description="Glob with '*' wildcards, e.g. search:*"),
    ) -> ClearCacheResponse:
        return await handler.clear_cache(pattern)

    @app.get("/diagnostics/background", response_model=BackgroundQueueResponse)
    async def background(handler: DiagnosticsHandlerDep) -> BackgroundQueueResponse:
        return await handler.background()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "grant_matcher.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
