"""Shared fixtures and in-memory collaborators."""

import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from grant_matcher.entities import (
    ApplicantProfile,
    AttributePredicate,
    GrantOpportunity,
    SearchCandidate,
)
from grant_matcher.matching import grant_to_attributes
from grant_matcher.protocols import ConversationReply

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeVectorSearch:
    """VectorSearchService returning a fixed candidate list."""

    def __init__(self, candidates: list[SearchCandidate] | None = None) -> None:
        self.candidates = list(candidates or [])
        self.search_calls: list[dict[str, Any]] = []
        self.stored: dict[str, dict[str, Any]] = {}
        self.vectors: dict[str, list[float]] = {}
        self.deleted: list[str] = []
        self.error: Exception | None = None
        # When set, search snapshots its hits, signals ``entered`` and waits on ``gate``.
        self.gate: asyncio.Event | None = None
        self.entered: asyncio.Event | None = None

    async def search(
        self,
        query_text: str,
        predicate: Sequence[AttributePredicate],
        min_similarity: float,
        limit: int,
    ) -> list[SearchCandidate]:
        self.search_calls.append(
            {
                "query": query_text,
                "predicate": list(predicate),
                "min_similarity": min_similarity,
                "limit": limit,
            }
        )
        if self.error is not None:
            raise self.error
        hits = [c for c in self.candidates if c.similarity >= min_similarity]
        if self.gate is not None:
            if self.entered is not None:
                self.entered.set()
            await self.gate.wait()
        return hits[:limit]

    async def store_entity(self, attributes: Mapping[str, Any], narrative_text: str, name: str = "") -> str:
        entity_id = f"entity-{len(self.stored) + 1}"
        self.stored[entity_id] = {"attributes": dict(attributes), "narrative": narrative_text, "name": name}
        return entity_id

    async def upload_vector(self, entity_id: str, vector: list[float]) -> None:
        self.vectors[entity_id] = list(vector)

    async def delete_entity(self, entity_id: str) -> None:
        self.deleted.append(entity_id)


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self.applicants: dict[str, ApplicantProfile] = {}
        self.grants: dict[tuple[str, str], GrantOpportunity] = {}
        self.grant_ttls: dict[tuple[str, str], int | None] = {}
        self.applicant_reads = 0

    async def get_applicant(self, applicant_id: str) -> ApplicantProfile | None:
        self.applicant_reads += 1
        return self.applicants.get(applicant_id)

    async def save_applicant(self, applicant: ApplicantProfile) -> None:
        self.applicants[applicant.id] = applicant

    async def get_grant(self, agency: str, grant_id: str) -> GrantOpportunity | None:
        return self.grants.get((agency, grant_id))

    async def save_grant(self, grant: GrantOpportunity, ttl_seconds: int | None = None) -> None:
        self.grants[(grant.agency, grant.id)] = grant
        self.grant_ttls[(grant.agency, grant.id)] = ttl_seconds

    async def delete_grant(self, agency: str, grant_id: str) -> bool:
        return self.grants.pop((agency, grant_id), None) is not None


class FakeEmbeddingProvider:
    def __init__(self, dimension: int = 4) -> None:
        self.calls: list[str] = []
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "fake-embedder"

    async def encode(self, text: str) -> list[float]:
        self.calls.append(text)
        return [float(len(text) % 7), 1.0, 0.0, 0.5][: self._dimension]

    async def is_available(self) -> bool:
        return True


class FakeConversationProvider:
    def __init__(self, extracted: dict[str, Any] | None = None) -> None:
        self.extracted = extracted or {}
        self.messages: list[tuple[str, str]] = []

    async def send_message(self, entity_id: str, message: str) -> ConversationReply:
        self.messages.append((entity_id, message))
        return ConversationReply(
            reply="Thanks! What is your annual budget?",
            extracted_attributes=self.extracted,
            profile_complete=False,
        )


def make_grant(grant_id: str = "grant-a", **overrides: Any) -> GrantOpportunity:
    fields: dict[str, Any] = {
        "id": grant_id,
        "name": f"Grant {grant_id}",
        "agency": "Department of Education",
        "description": "Supports after-school literacy programs.",
        "natural_language_summary": "Supports after-school literacy programs.",
        "applicant_types": ["nonprofit"],
        "funding_categories": ["education"],
        "eligible_states": ["CA", "NY"],
        "award_ceiling": 10_000.0,
        "close_date": NOW + timedelta(days=120),
    }
    fields.update(overrides)
    return GrantOpportunity(**fields)


def candidate_for(grant: GrantOpportunity, similarity: float) -> SearchCandidate:
    return SearchCandidate(
        entity_id=grant.id,
        similarity=similarity,
        attributes=grant_to_attributes(grant),
        name=grant.name,
        description=grant.description,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def applicant() -> ApplicantProfile:
    return ApplicantProfile(
        id="org-1",
        owner_id="user-1",
        organization_name="Bay Area Readers",
        organization_type="501(c)(3)",
        applicant_types=["nonprofit"],
        state="CA",
        funding_categories=["education"],
        annual_budget=250_000.0,
        typical_project_budget=40_000.0,
        mission_statement="Literacy for every child.",
        profile_summary="We run after-school literacy programs for children in Oakland.",
    )


@pytest.fixture
def grant_factory() -> Callable[..., GrantOpportunity]:
    return make_grant


@pytest.fixture
def candidate_factory() -> Callable[[GrantOpportunity, float], SearchCandidate]:
    return candidate_for


@pytest.fixture
def vector_search() -> FakeVectorSearch:
    return FakeVectorSearch()


@pytest.fixture
def store(applicant: ApplicantProfile) -> InMemoryDocumentStore:
    document_store = InMemoryDocumentStore()
    document_store.applicants[applicant.id] = applicant
    return document_store


@pytest.fixture
def embeddings() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def conversation_factory() -> Callable[..., FakeConversationProvider]:
    return FakeConversationProvider
