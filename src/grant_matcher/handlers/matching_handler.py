"""HTTP handlers for matching, catalog and profile operations.

Handlers convert between DTOs (API contracts) and entities, call the
services, and translate domain errors into HTTP status codes.
"""

from grant_matcher.dto import (
    ApplicantProfilePayload,
    ApplicantProfileResponse,
    ConversationMessageRequest,
    ConversationResponse,
    EligibilityCheckRequest,
    EligibilityCheckResponse,
    GrantPayload,
    GrantResponse,
    SearchGrantsRequest,
    SearchGrantsResponse,
)
from grant_matcher.entities import (
    ApplicantProfile,
    GrantOpportunity,
    SearchFilters,
    SearchRequest,
)
from grant_matcher.services import CatalogService, GrantSearchService, ProfileService
from grant_matcher.utils import ensure_utc

from .errors import translate_errors


def search_request_from_dto(request: SearchGrantsRequest) -> SearchRequest:
    filters = request.filters
    return SearchRequest(
        applicant_id=request.applicant_id.strip(),
        query=request.query,
        offset=request.offset,
        limit=request.limit,
        min_similarity=request.min_similarity,
        filters=SearchFilters(
            min_award_amount=filters.min_award_amount,
            max_award_amount=filters.max_award_amount,
            deadline_after=ensure_utc(filters.deadline_after) if filters.deadline_after else None,
            deadline_before=ensure_utc(filters.deadline_before) if filters.deadline_before else None,
            requires_essay=filters.requires_essay,
        ),
        eligible_only=request.eligible_only,
    )


def grant_from_dto(payload: GrantPayload) -> GrantOpportunity:
    data = payload.model_dump()
    for name in ("post_date", "close_date"):
        if data[name] is not None:
            data[name] = ensure_utc(data[name])
    return GrantOpportunity(**data)


def applicant_from_dto(applicant_id: str, payload: ApplicantProfilePayload) -> ApplicantProfile:
    return ApplicantProfile(id=applicant_id, **payload.model_dump())


class MatchingHandler:
    """HTTP handlers for the matching engine.

    Example:
        ```python
        handler = MatchingHandler(search_service, catalog_service, profile_service)

        @app.post("/matches/search", response_model=SearchGrantsResponse)
        async def search(request: SearchGrantsRequest):
            return await handler.search(request)
        ```
    """

    def __init__(
        self,
        search_service: GrantSearchService,
        catalog_service: CatalogService,
        profile_service: ProfileService,
    ) -> None:
        self._search = search_service
        self._catalog = catalog_service
        self._profiles = profile_service

    async def search(self, request: SearchGrantsRequest) -> SearchGrantsResponse:
        """Handle POST /matches/search requests."""
        with translate_errors("search"):
            response = await self._search.find_grants(search_request_from_dto(request))
        return SearchGrantsResponse.model_validate(response)

    async def check_eligibility(self, request: EligibilityCheckRequest) -> EligibilityCheckResponse:
        """Handle POST /eligibility/check requests."""
        with translate_errors("check_eligibility"):
            if request.grant is not None:
                grant = grant_from_dto(request.grant)
            else:
                grant = await self._catalog.get_grant(request.agency or "", request.grant_id or "")
            verdict = await self._search.check_eligibility(request.applicant_id, grant)

        return EligibilityCheckResponse(
            applicant_id=request.applicant_id,
            grant_id=grant.id,
            is_eligible=verdict.is_eligible,
            unmet_requirements=verdict.unmet,
        )

    async def publish_grant(self, payload: GrantPayload) -> GrantResponse:
        """Handle POST /grants requests."""
        with translate_errors("publish_grant"):
            stored = await self._catalog.publish_grant(grant_from_dto(payload))
        return GrantResponse.model_validate(stored)

    async def remove_grant(self, agency: str, grant_id: str) -> None:
        """Handle DELETE /grants/{agency}/{grant_id} requests."""
        with translate_errors("remove_grant"):
            await self._catalog.remove_grant(agency, grant_id)

    async def get_profile(self, applicant_id: str) -> ApplicantProfileResponse:
        """Handle GET /profiles/{applicant_id} requests."""
        with translate_errors("get_profile"):
            applicant = await self._profiles.get_applicant(applicant_id)
        return ApplicantProfileResponse.model_validate(applicant)

    async def save_profile(self, applicant_id: str, payload: ApplicantProfilePayload) -> ApplicantProfileResponse:
        """Handle PUT /profiles/{applicant_id} requests."""
        with translate_errors("save_profile"):
            stored = await self._profiles.save_applicant(applicant_from_dto(applicant_id, payload))
        return ApplicantProfileResponse.model_validate(stored)

    async def converse(self, applicant_id: str, request: ConversationMessageRequest) -> ConversationResponse:
        """Handle POST /profiles/{applicant_id}/conversation requests."""
        with translate_errors("converse"):
            profile, reply = await self._profiles.enrich_from_conversation(applicant_id, request.message)
        return ConversationResponse(
            reply=reply.reply,
            profile_complete=reply.profile_complete,
            extracted_attributes=reply.extracted_attributes,
            profile=ApplicantProfileResponse.model_validate(profile),
        )
