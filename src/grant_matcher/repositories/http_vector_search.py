"""HTTP entity-matching client implementing VectorSearchService.

Talks to an entity-matching API that stores entities with attribute bags,
embeds their narrative text and answers similarity queries filtered by
attribute predicates.

Endpoints:
    POST   /profiles                          store an entity
    POST   /profiles/{id}/embeddings/upload   attach a precomputed vector
    POST   /profiles/search                   similarity search
    DELETE /profiles/{id}                     delete an entity
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import Enum
from typing import Any

import httpx
import structlog

from grant_matcher.config import settings
from grant_matcher.entities import AttributePredicate, SearchCandidate
from grant_matcher.errors import CollaboratorUnavailableError

from .http_errors import raise_for_collaborator_status, transport_error

logger = structlog.get_logger(__name__)

COLLABORATOR = "vector_search"

# Entity type code for funding opportunities in the entity-matching API
GRANT_ENTITY_TYPE = 3


def _wire_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_wire_value(v) for v in value]
    return value


def predicate_to_wire(predicate: Sequence[AttributePredicate]) -> dict[str, Any] | None:
    """Serialize a conjunctive predicate as an ``attributeFilters`` group."""
    if not predicate:
        return None
    return {
        "logicalOperator": "And",
        "filters": [
            {
                "fieldPath": term.field_path,
                "operator": term.operator.value,
                "value": _wire_value(term.value),
            }
            for term in predicate
        ],
    }


def candidate_from_result(item: Mapping[str, Any]) -> SearchCandidate | None:
    """Convert one ``results[]`` item; returns None for unusable items."""
    profile = item.get("profile")
    if not isinstance(profile, Mapping):
        profile = {}

    entity_id = str(item.get("profileId") or profile.get("id") or "").strip()
    if not entity_id:
        return None

    try:
        similarity = float(item.get("similarity", 0.0))
    except (TypeError, ValueError):
        similarity = 0.0

    attributes = profile.get("attributes")
    return SearchCandidate(
        entity_id=entity_id,
        similarity=similarity,
        attributes=dict(attributes) if isinstance(attributes, Mapping) else {},
        name=str(profile.get("name") or ""),
        description=str(profile.get("description") or ""),
    )


class HttpVectorSearchClient:
    """Entity-matching API client.

    Satisfies the VectorSearchService protocol through structural typing.

    Example:
        ```python
        client = HttpVectorSearchClient.create()
        candidates = await client.search("after-school literacy", predicate, 0.6, 100)
        await client.close()
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        embedding_model: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API base URL. Defaults to settings.vector_search_url.
            api_key: Subscription key sent with every request.
            timeout: Request timeout in seconds.
            embedding_model: Model name reported with uploaded vectors.
            client: Preconfigured httpx client (tests pass one with a mock transport).
        """
        self._base_url = base_url or settings.vector_search_url
        self._api_key = api_key if api_key is not None else settings.vector_search_api_key
        self._timeout = timeout or settings.vector_search_timeout
        self._embedding_model = embedding_model or settings.embedding_model
        self._client = client

    @classmethod
    def create(cls, base_url: str | None = None, api_key: str | None = None) -> "HttpVectorSearchClient":
        """Factory method to create HttpVectorSearchClient with defaults from settings."""
        return cls(base_url=base_url, api_key=api_key)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            headers = {"Ocp-Apim-Subscription-Key": self._api_key} if self._api_key else {}
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    async def search(
        self,
        query_text: str,
        predicate: Sequence[AttributePredicate],
        min_similarity: float,
        limit: int,
    ) -> list[SearchCandidate]:
        body = {
            "query": query_text,
            "attributeFilters": predicate_to_wire(predicate),
            "minSimilarity": min_similarity,
            "limit": limit,
            "includeEmbeddings": False,
        }
        data = await self._request("POST", "/profiles/search", json=body)

        results = data.get("results") if isinstance(data, Mapping) else None
        candidates: list[SearchCandidate] = []
        for item in results or []:
            candidate = candidate_from_result(item) if isinstance(item, Mapping) else None
            if candidate is None:
                logger.warning("search_result_skipped", reason="missing profile id")
                continue
            candidates.append(candidate)

        logger.debug("vector_search_completed", results=len(candidates), limit=limit)
        return candidates

    async def store_entity(
        self,
        attributes: Mapping[str, Any],
        narrative_text: str,
        name: str = "",
    ) -> str:
        body = {
            "entityType": GRANT_ENTITY_TYPE,
            "name": name,
            "description": narrative_text,
            "attributes": {k: _wire_value(v) for k, v in attributes.items()},
        }
        data = await self._request("POST", "/profiles", json=body)

        entity_id = str(data.get("id") or "") if isinstance(data, Mapping) else ""
        if not entity_id:
            raise CollaboratorUnavailableError(COLLABORATOR, "store response carried no entity id")
        logger.info("entity_stored", entity_id=entity_id, name=name)
        return entity_id

    async def upload_vector(self, entity_id: str, vector: list[float]) -> None:
        body = {"embedding": list(vector), "embeddingModel": self._embedding_model}
        await self._request("POST", f"/profiles/{entity_id}/embeddings/upload", json=body)

    async def delete_entity(self, entity_id: str) -> None:
        try:
            response = await self.client.delete(f"/profiles/{entity_id}")
        except httpx.HTTPError as e:
            raise transport_error(COLLABORATOR, e) from e
        if response.status_code == 404:
            logger.info("entity_already_deleted", entity_id=entity_id)
            return
        raise_for_collaborator_status(COLLABORATOR, response)

    async def close(self) -> None:
        """Close the async HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            response = await self.client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning("vector_search_transport_error", path=path, error=str(e))
            raise transport_error(COLLABORATOR, e) from e

        raise_for_collaborator_status(COLLABORATOR, response)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise CollaboratorUnavailableError(COLLABORATOR, "response was not valid JSON") from e
