"""Applicant profile access.

Profiles live in the document store and are cached under
``profile:applicant:<id>``. Saving a profile drops its cached copy and every
cached search for that applicant, since eligibility is baked into cached
search results.
"""

import dataclasses
import re
from typing import Any

import structlog
from pydantic import TypeAdapter

from grant_matcher.config import settings
from grant_matcher.entities import ApplicantProfile
from grant_matcher.errors import FeatureUnavailableError, InvalidRequestError, NotFoundError
from grant_matcher.matching.vocabulary import (
    APPLICANT_TYPES,
    FUNDING_CATEGORIES,
    US_STATES,
    normalize_tag,
    validate_applicant_types,
    validate_funding_categories,
    validate_state,
)
from grant_matcher.protocols import ConversationProvider, ConversationReply, DocumentStore
from grant_matcher.utils import utc_now

from .background import BackgroundTaskQueue, delayed_cache_invalidation
from .cache_keys import CacheKeys
from .cache_service import CacheService

logger = structlog.get_logger(__name__)

_PROFILE_ADAPTER = TypeAdapter(ApplicantProfile)

_AMOUNT_RE = re.compile(r"\$?\s*(\d[\d,]*(?:\.\d+)?)\s*([kKmM])?")


def validate_applicant(applicant: ApplicantProfile) -> None:
    """Raise InvalidRequestError unless every tag is in its vocabulary."""
    if not applicant.id or not applicant.id.strip():
        raise InvalidRequestError("id", "applicant id is required")
    validate_state("state", applicant.state)
    validate_applicant_types("applicant_types", applicant.applicant_types)
    validate_funding_categories("funding_categories", applicant.funding_categories)
    if applicant.annual_budget < 0:
        raise InvalidRequestError("annual_budget", "must not be negative")
    if applicant.typical_project_budget is not None and applicant.typical_project_budget < 0:
        raise InvalidRequestError("typical_project_budget", "must not be negative")


def parse_amount(text: str) -> float | None:
    """Extract a dollar amount such as "$250,000" or "1.5M" from free text."""
    match = _AMOUNT_RE.search(text)
    if match is None:
        return None
    amount = float(match.group(1).replace(",", ""))
    suffix = (match.group(2) or "").lower()
    if suffix == "k":
        amount *= 1_000
    elif suffix == "m":
        amount *= 1_000_000
    return amount


def _merge_tags(existing: list[str], extra: Any, vocabulary: frozenset[str]) -> list[str]:
    values = extra if isinstance(extra, list) else [extra]
    merged = list(existing)
    seen = {normalize_tag(v) for v in merged}
    for value in values:
        tag = normalize_tag(str(value))
        if tag in vocabulary and tag not in seen:
            seen.add(tag)
            merged.append(tag)
        elif tag not in vocabulary:
            logger.debug("extracted_tag_ignored", tag=tag)
    return merged


def apply_extracted_attributes(
    applicant: ApplicantProfile,
    extracted: dict[str, Any],
) -> ApplicantProfile:
    """Return a copy of ``applicant`` enriched with conversation-extracted attributes.

    Recognized keys: mission_statement, organization_type, ein, state,
    service_areas, funding_categories, applicant_types, annual_budget
    (number or text such as "$1.2M"), profile_summary. Unknown keys are
    ignored; list values are merged, scalar values replace.
    """
    changes: dict[str, Any] = {}

    for key in ("mission_statement", "organization_type", "ein", "profile_summary"):
        value = extracted.get(key)
        if isinstance(value, str) and value.strip():
            changes[key] = value.strip()

    state = extracted.get("state")
    if isinstance(state, str) and state.strip().upper() in US_STATES:
        changes["state"] = state.strip().upper()

    for key, vocabulary in (
        ("funding_categories", FUNDING_CATEGORIES),
        ("applicant_types", APPLICANT_TYPES),
    ):
        if extracted.get(key):
            merged = _merge_tags(getattr(applicant, key), extracted[key], vocabulary)
            if merged != getattr(applicant, key):
                changes[key] = merged

    service_areas = extracted.get("service_areas")
    if service_areas:
        values = service_areas if isinstance(service_areas, list) else [service_areas]
        known = {normalize_tag(v) for v in applicant.service_areas}
        additions = [str(v).strip() for v in values if str(v).strip() and normalize_tag(str(v)) not in known]
        if additions:
            changes["service_areas"] = [*applicant.service_areas, *additions]

    budget = extracted.get("annual_budget")
    if isinstance(budget, (int, float)) and not isinstance(budget, bool):
        changes["annual_budget"] = float(budget)
    elif isinstance(budget, str):
        parsed = parse_amount(budget)
        if parsed is not None:
            changes["annual_budget"] = parsed

    if not changes:
        return applicant
    return dataclasses.replace(applicant, last_modified=utc_now(), **changes)


class ProfileService:
    """Cached applicant profile reads and writes.

    The conversation provider is optional; ``conversation_enabled`` is fixed
    at construction and ``enrich_from_conversation`` raises
    ``FeatureUnavailableError`` without one.

    Saving a profile drops that applicant's cached searches before returning.
    With a background queue, a second sweep runs after
    ``invalidation_followup_seconds`` to catch results other processes were
    still writing to the shared tier.
    """

    def __init__(
        self,
        store: DocumentStore,
        cache: CacheService | None = None,
        background: BackgroundTaskQueue | None = None,
        conversation: ConversationProvider | None = None,
        cache_ttl: float | None = None,
        invalidation_followup_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._background = background
        self._conversation = conversation
        self._cache_ttl = cache_ttl or settings.profile_cache_ttl
        self._followup_seconds = (
            invalidation_followup_seconds
            if invalidation_followup_seconds is not None
            else settings.search_invalidation_followup_seconds
        )

    @property
    def conversation_enabled(self) -> bool:
        return self._conversation is not None

    async def get_applicant(self, applicant_id: str) -> ApplicantProfile:
        """Load a profile, from cache when possible.

        Raises:
            NotFoundError: If no profile has this id
        """
        if not applicant_id or not applicant_id.strip():
            raise InvalidRequestError("applicant_id", "applicant id is required")

        if self._cache is None:
            applicant = await self._store.get_applicant(applicant_id)
        else:
            payload = await self._cache.get_or_create(
                CacheKeys.profile(applicant_id),
                lambda: self._load_payload(applicant_id),
                absolute_ttl=self._cache_ttl,
            )
            applicant = _PROFILE_ADAPTER.validate_python(payload) if payload is not None else None

        if applicant is None:
            raise NotFoundError("applicant", applicant_id)
        return applicant

    async def save_applicant(self, applicant: ApplicantProfile) -> ApplicantProfile:
        validate_applicant(applicant)
        now = utc_now()
        stored = dataclasses.replace(
            applicant,
            created_at=applicant.created_at or now,
            last_modified=now,
        )
        await self._store.save_applicant(stored)
        logger.info("applicant_saved", applicant_id=stored.id)

        if self._cache is not None:
            await self._cache.remove(CacheKeys.profile(stored.id))
            await self._invalidate_searches(self._cache, stored.id)
        return stored

    async def enrich_from_conversation(
        self,
        applicant_id: str,
        message: str,
    ) -> tuple[ApplicantProfile, ConversationReply]:
        """Send one intake message and merge the extracted attributes into the profile."""
        if self._conversation is None:
            raise FeatureUnavailableError("conversation")
        if not message or not message.strip():
            raise InvalidRequestError("message", "message cannot be empty")

        applicant = await self.get_applicant(applicant_id)
        reply = await self._conversation.send_message(applicant.id, message)
        enriched = apply_extracted_attributes(applicant, reply.extracted_attributes)
        if enriched is not applicant:
            enriched = await self.save_applicant(enriched)
        return enriched, reply

    async def _load_payload(self, applicant_id: str) -> dict[str, Any] | None:
        applicant = await self._store.get_applicant(applicant_id)
        if applicant is None:
            return None
        return _PROFILE_ADAPTER.dump_python(applicant, mode="json")

    async def _invalidate_searches(self, cache: CacheService, applicant_id: str) -> None:
        pattern = CacheKeys.applicant_searches(applicant_id)
        await cache.remove_by_pattern(pattern)
        if self._background is not None and self._followup_seconds > 0:
            self._background.try_enqueue(
                f"invalidate_searches:{applicant_id}",
                delayed_cache_invalidation(cache, pattern, self._followup_seconds),
            )
