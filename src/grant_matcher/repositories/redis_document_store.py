"""Redis implementation of DocumentStore.

Records are stored as JSON strings under partitioned keys:

    <prefix>:applicant:<id>
    <prefix>:owner:<owner_id>            set of applicant ids
    <prefix>:grant:<agency>:<grant_id>

Grants carry the catalog retention window as their Redis expiry.
"""

import redis.asyncio as aioredis
import structlog
from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from grant_matcher.config import get_redis_client, settings
from grant_matcher.entities import ApplicantProfile, GrantOpportunity
from grant_matcher.errors import CollaboratorUnavailableError

logger = structlog.get_logger(__name__)

COLLABORATOR = "document_store"

_APPLICANT_ADAPTER = TypeAdapter(ApplicantProfile)
_GRANT_ADAPTER = TypeAdapter(GrantOpportunity)


class RedisDocumentStore:
    """Profile and grant records in Redis.

    This class satisfies the DocumentStore protocol through structural
    typing. Redis failures surface as ``CollaboratorUnavailableError``.
    """

    def __init__(
        self,
        redis_client: aioredis.Redis | None = None,
        key_prefix: str | None = None,
    ) -> None:
        self._client = redis_client or get_redis_client()
        self._prefix = f"{key_prefix or settings.cache_key_prefix}:docs"

    @classmethod
    def create(cls) -> "RedisDocumentStore":
        return cls()

    def _applicant_key(self, applicant_id: str) -> str:
        return f"{self._prefix}:applicant:{applicant_id}"

    def _owner_key(self, owner_id: str) -> str:
        return f"{self._prefix}:owner:{owner_id}"

    def _grant_key(self, agency: str, grant_id: str) -> str:
        return f"{self._prefix}:grant:{agency}:{grant_id}"

    async def get_applicant(self, applicant_id: str) -> ApplicantProfile | None:
        raw = await self._call("get_applicant", self._client.get(self._applicant_key(applicant_id)))
        if raw is None:
            return None
        try:
            return _APPLICANT_ADAPTER.validate_json(raw)
        except ValidationError as e:
            logger.error("stored_record_invalid", kind="applicant", key=applicant_id, error=str(e))
            return None

    async def save_applicant(self, applicant: ApplicantProfile) -> None:
        pipe = self._client.pipeline()
        pipe.set(self._applicant_key(applicant.id), _APPLICANT_ADAPTER.dump_json(applicant))
        if applicant.owner_id:
            pipe.sadd(self._owner_key(applicant.owner_id), applicant.id)
        await self._call("save_applicant", pipe.execute())

    async def list_applicant_ids(self, owner_id: str) -> list[str]:
        members = await self._call("list_applicant_ids", self._client.smembers(self._owner_key(owner_id)))
        return sorted(m.decode() if isinstance(m, bytes) else m for m in members)

    async def get_grant(self, agency: str, grant_id: str) -> GrantOpportunity | None:
        raw = await self._call("get_grant", self._client.get(self._grant_key(agency, grant_id)))
        if raw is None:
            return None
        try:
            return _GRANT_ADAPTER.validate_json(raw)
        except ValidationError as e:
            logger.error("stored_record_invalid", kind="grant", key=f"{agency}/{grant_id}", error=str(e))
            return None

    async def save_grant(self, grant: GrantOpportunity, ttl_seconds: int | None = None) -> None:
        await self._call(
            "save_grant",
            self._client.set(
                self._grant_key(grant.agency, grant.id),
                _GRANT_ADAPTER.dump_json(grant),
                ex=ttl_seconds or None,
            ),
        )

    async def delete_grant(self, agency: str, grant_id: str) -> bool:
        deleted = await self._call("delete_grant", self._client.delete(self._grant_key(agency, grant_id)))
        return deleted > 0

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    async def _call(operation: str, awaitable):
        try:
            return await awaitable
        except RedisError as e:
            logger.warning("document_store_failed", operation=operation, error=str(e))
            raise CollaboratorUnavailableError(COLLABORATOR, str(e) or type(e).__name__) from e
