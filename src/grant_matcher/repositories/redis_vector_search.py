"""Redis Stack implementation of VectorSearchService.

Grants are stored as hashes in a redisvl ``AsyncSearchIndex`` with an HNSW
vector field over the embedded narrative text. Allow-list attributes are
indexed as TAG fields; an empty allow-list is indexed as the ``__any__``
sentinel tag so that a ``ContainsOrEmpty`` predicate becomes a plain tag
membership test: ``@field:{value1 | value2 | __any__}``.
"""

import json
import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

import numpy as np
import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError
from redisvl.exceptions import RedisSearchError
from redisvl.index import AsyncSearchIndex
from redisvl.query import VectorQuery
from redisvl.query.filter import FilterExpression, Num, Tag

from grant_matcher.config import get_redis_client, settings
from grant_matcher.entities import AttributePredicate, PredicateOperator, SearchCandidate
from grant_matcher.errors import CollaboratorUnavailableError, InvalidRequestError
from grant_matcher.matching.conversion import (
    ATTR_APPLICANT_TYPES,
    ATTR_AWARD_CEILING,
    ATTR_CLOSE_DATE,
    ATTR_ELIGIBLE_STATES,
    ATTR_FUNDING_CATEGORIES,
    ATTR_GRANT_ID,
    ATTR_REQUIRES_ESSAY,
)
from grant_matcher.matching.predicates import field_path
from grant_matcher.matching.vocabulary import normalize_tag
from grant_matcher.protocols import EmbeddingProvider
from grant_matcher.utils import parse_datetime_utc

logger = structlog.get_logger(__name__)

COLLABORATOR = "vector_search"

ANY_TAG = "__any__"
TAG_SEPARATOR = "|"
VECTOR_FIELD = "embedding"

# Attribute path -> (index field, kind)
INDEXED_FIELDS: dict[str, tuple[str, str]] = {
    field_path(ATTR_APPLICANT_TYPES): ("applicant_types", "tag"),
    field_path(ATTR_FUNDING_CATEGORIES): ("funding_categories", "tag"),
    field_path(ATTR_ELIGIBLE_STATES): ("eligible_states", "tag"),
    field_path(ATTR_REQUIRES_ESSAY): ("requires_essay", "tag"),
    field_path(ATTR_AWARD_CEILING): ("award_ceiling", "numeric"),
    field_path(ATTR_CLOSE_DATE): ("close_date", "numeric"),
}

RETURN_FIELDS = ["name", "description", "attributes_json"]


def build_schema(index_name: str, dimension: int) -> dict[str, Any]:
    return {
        "index": {
            "name": index_name,
            "prefix": f"{index_name}:",
            "storage_type": "hash",
        },
        "fields": [
            {"name": "grant_id", "type": "tag"},
            {"name": "name", "type": "text"},
            {"name": "description", "type": "text"},
            {"name": "applicant_types", "type": "tag", "attrs": {"separator": TAG_SEPARATOR}},
            {"name": "funding_categories", "type": "tag", "attrs": {"separator": TAG_SEPARATOR}},
            {"name": "eligible_states", "type": "tag", "attrs": {"separator": TAG_SEPARATOR}},
            {"name": "requires_essay", "type": "tag"},
            {"name": "award_ceiling", "type": "numeric"},
            {"name": "close_date", "type": "numeric"},
            {
                "name": VECTOR_FIELD,
                "type": "vector",
                "attrs": {
                    "dims": dimension,
                    "algorithm": "HNSW",
                    "metric": "COSINE",
                    "datatype": "FLOAT32",
                },
            },
        ],
    }


def _tags(value: Any) -> list[str]:
    values = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
    return [normalize_tag(str(v)) for v in values if v is not None and str(v).strip()]


def _numeric(value: Any) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, str):
        parsed = parse_datetime_utc(value)
        if parsed is not None:
            return parsed.timestamp()
    return float(value)


def _bool_tag(value: Any) -> str:
    return "true" if value is True or str(value).lower() in ("true", "1", "yes") else "false"


def predicate_to_filter(predicate: Sequence[AttributePredicate]) -> FilterExpression | None:
    """Translate a conjunctive predicate into a redisvl filter expression.

    Raises:
        InvalidRequestError: If a term targets an attribute that is not indexed
    """
    expression: FilterExpression | None = None
    for term in predicate:
        if term.field_path not in INDEXED_FIELDS:
            raise InvalidRequestError("predicate", f"attribute {term.field_path!r} is not filterable")
        name, kind = INDEXED_FIELDS[term.field_path]

        if term.operator is PredicateOperator.CONTAINS_OR_EMPTY:
            part = Tag(name) == [*_tags(term.value), ANY_TAG]
        elif term.operator is PredicateOperator.EQUAL:
            part = Tag(name) == (_bool_tag(term.value) if name == "requires_essay" else _tags(term.value))
        elif kind != "numeric":
            raise InvalidRequestError("predicate", f"{term.operator.value} needs a numeric attribute")
        elif term.operator is PredicateOperator.GREATER_THAN_OR_EQUAL:
            part = Num(name) >= _numeric(term.value)
        else:
            part = Num(name) <= _numeric(term.value)

        expression = part if expression is None else expression & part
    return expression


def attributes_to_hash(attributes: Mapping[str, Any]) -> dict[str, Any]:
    """Indexed hash fields for one grant attribute bag."""
    record: dict[str, Any] = {
        "grant_id": str(attributes.get(ATTR_GRANT_ID) or ""),
        "requires_essay": _bool_tag(attributes.get(ATTR_REQUIRES_ESSAY)),
        "attributes_json": json.dumps(dict(attributes), default=str),
    }
    for path, (name, kind) in INDEXED_FIELDS.items():
        attribute = path.removeprefix("attributes.")
        value = attributes.get(attribute)
        if kind == "tag" and name != "requires_essay":
            record[name] = TAG_SEPARATOR.join(_tags(value) or [ANY_TAG])
        elif kind == "numeric" and value not in (None, ""):
            try:
                record[name] = _numeric(value)
            except (TypeError, ValueError):
                logger.debug("unindexable_attribute", attribute=attribute, value=repr(value))
    return record


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value) if value is not None else ""


def _to_bytes(vector: Sequence[float]) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


class RedisVectorSearch:
    """Vector search over a Redis Stack index.

    This class satisfies the VectorSearchService protocol through structural
    typing. Query text and stored narratives are embedded with the given
    provider.

    Example:
        ```python
        search = RedisVectorSearch.create(embedding_provider=provider)
        candidates = await search.search("rural health clinics", predicate, 0.6, 50)
        ```
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        redis_client: aioredis.Redis | None = None,
        index_name: str | None = None,
    ) -> None:
        """Initialize the vector search.

        Args:
            embedding_provider: Provider for query and narrative vectors.
            redis_client: asyncio Redis client. If None, creates default.
            index_name: Name of the Redis search index.
        """
        self._embeddings = embedding_provider
        self._client = redis_client or get_redis_client()
        self._index_name = index_name or settings.vector_index_name
        self._index: AsyncSearchIndex | None = None

    @classmethod
    def create(
        cls,
        embedding_provider: EmbeddingProvider,
        index_name: str | None = None,
    ) -> "RedisVectorSearch":
        """Factory method to create RedisVectorSearch with defaults from settings."""
        return cls(embedding_provider=embedding_provider, index_name=index_name)

    def _key(self, entity_id: str) -> str:
        return f"{self._index_name}:{entity_id}"

    async def _ensure_index(self) -> AsyncSearchIndex:
        if self._index is not None:
            return self._index

        schema = build_schema(self._index_name, self._embeddings.dimension)
        index = AsyncSearchIndex.from_dict(schema, redis_client=self._client)
        if not await index.exists():
            await index.create(overwrite=False)
            logger.info("vector_index_created", index=self._index_name)
        else:
            logger.info("vector_index_reused", index=self._index_name)
        self._index = index
        return index

    async def search(
        self,
        query_text: str,
        predicate: Sequence[AttributePredicate],
        min_similarity: float,
        limit: int,
    ) -> list[SearchCandidate]:
        filter_expression = predicate_to_filter(predicate)
        vector = await self._embeddings.encode(query_text)

        query = VectorQuery(
            vector=vector,
            vector_field_name=VECTOR_FIELD,
            return_fields=RETURN_FIELDS,
            num_results=limit,
            filter_expression=filter_expression,
        )
        try:
            index = await self._ensure_index()
            results = await index.query(query)
        except (RedisError, RedisSearchError) as e:
            raise CollaboratorUnavailableError(COLLABORATOR, str(e) or type(e).__name__) from e

        candidates: list[SearchCandidate] = []
        for result in results:
            # COSINE distance is 1 - cosine similarity
            similarity = max(0.0, min(1.0 - float(result.get("vector_distance", 1.0)), 1.0))
            if similarity < min_similarity:
                continue
            candidates.append(
                SearchCandidate(
                    entity_id=_text(result.get("id")).removeprefix(f"{self._index_name}:"),
                    similarity=similarity,
                    attributes=self._decode_attributes(result.get("attributes_json")),
                    name=_text(result.get("name")),
                    description=_text(result.get("description")),
                )
            )
        return candidates

    async def store_entity(
        self,
        attributes: Mapping[str, Any],
        narrative_text: str,
        name: str = "",
    ) -> str:
        entity_id = str(attributes.get(ATTR_GRANT_ID) or uuid.uuid4().hex)
        record = attributes_to_hash(attributes)
        record["name"] = name
        record["description"] = narrative_text
        record[VECTOR_FIELD] = _to_bytes(await self._embeddings.encode(narrative_text))

        try:
            index = await self._ensure_index()
            await index.load([record], keys=[self._key(entity_id)])
        except (RedisError, RedisSearchError) as e:
            raise CollaboratorUnavailableError(COLLABORATOR, str(e) or type(e).__name__) from e

        logger.info("entity_stored", entity_id=entity_id, index=self._index_name)
        return entity_id

    async def upload_vector(self, entity_id: str, vector: list[float]) -> None:
        try:
            await self._client.hset(self._key(entity_id), VECTOR_FIELD, _to_bytes(vector))
        except RedisError as e:
            raise CollaboratorUnavailableError(COLLABORATOR, str(e) or type(e).__name__) from e

    async def delete_entity(self, entity_id: str) -> None:
        try:
            await self._client.delete(self._key(entity_id))
        except RedisError as e:
            raise CollaboratorUnavailableError(COLLABORATOR, str(e) or type(e).__name__) from e

    @staticmethod
    def _decode_attributes(raw: Any) -> dict[str, Any]:
        if not raw:
            return {}
        try:
            decoded = json.loads(raw)
        except (TypeError, ValueError):
            return {}
        return decoded if isinstance(decoded, dict) else {}
