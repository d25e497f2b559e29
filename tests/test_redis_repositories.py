"""
Tests for the Redis-backed cache tier and document store against an in-memory client.
"""

import fnmatch
import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from grant_matcher.errors import CollaboratorUnavailableError
from grant_matcher.repositories import RedisCacheTier, RedisDocumentStore


class MemoryRedis:
    """The subset of redis.asyncio.Redis used by the repositories."""

    def __init__(self) -> None:
        self.data: dict[str, object] = {}
        self.px: dict[str, int | None] = {}
        self.ex: dict[str, int | None] = {}
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("connection refused")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, px=None, ex=None):
        self._check()
        self.data[key] = value
        self.px[key] = px
        self.ex[key] = ex
        return True

    async def delete(self, key):
        self._check()
        return 1 if self.data.pop(key, None) is not None else 0

    async def pexpire(self, key, ttl_ms):
        self.px[key] = ttl_ms
        return True

    async def scan_iter(self, match=None, count=None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key.encode()

    async def sadd(self, key, member):
        self.data.setdefault(key, set()).add(member)

    async def smembers(self, key):
        self._check()
        return self.data.get(key, set())

    async def ping(self):
        self._check()
        return True

    async def aclose(self):
        return None

    def pipeline(self):
        return MemoryPipeline(self)


class MemoryPipeline:
    def __init__(self, redis: MemoryRedis) -> None:
        self._redis = redis
        self._calls = []

    def set(self, key, value):
        self._calls.append(self._redis.set(key, value))

    def sadd(self, key, member):
        self._calls.append(self._redis.sadd(key, member))

    async def execute(self):
        return [await call for call in self._calls]


@pytest.fixture
def memory_redis():
    return MemoryRedis()


@pytest.mark.asyncio
async def test_cache_tier_round_trip(memory_redis):
    tier = RedisCacheTier(memory_redis, key_prefix="gm")
    await tier.set("search:grants:org-1:abc", {"total_count": 3}, absolute_ttl=600, sliding_ttl=60)

    assert "gm:search:grants:org-1:abc" in memory_redis.data
    assert memory_redis.px["gm:search:grants:org-1:abc"] == 60_000
    assert await tier.get("search:grants:org-1:abc") == {"total_count": 3}
    assert await tier.keys("search:*") == ["search:grants:org-1:abc"]
    assert await tier.delete("search:grants:org-1:abc") is True
    assert await tier.delete("search:grants:org-1:abc") is False


@pytest.mark.asyncio
async def test_cache_tier_drops_expired_and_corrupt_entries(memory_redis):
    tier = RedisCacheTier(memory_redis, key_prefix="gm")
    memory_redis.data["gm:old"] = json.dumps({"v": 1, "exp": 1.0, "sliding": None})
    memory_redis.data["gm:junk"] = "not json"

    assert await tier.get("old") is None
    assert await tier.get("junk") is None
    assert memory_redis.data == {}


@pytest.mark.asyncio
async def test_cache_tier_health_check(memory_redis):
    tier = RedisCacheTier(memory_redis, key_prefix="gm")
    assert await tier.health_check() is True
    memory_redis.down = True
    assert await tier.health_check() is False


@pytest.mark.asyncio
async def test_document_store_applicants(memory_redis, applicant):
    store = RedisDocumentStore(memory_redis, key_prefix="gm")
    await store.save_applicant(applicant)

    assert await store.get_applicant("org-1") == applicant
    assert await store.get_applicant("missing") is None
    assert await store.list_applicant_ids("user-1") == ["org-1"]


@pytest.mark.asyncio
async def test_document_store_grants(memory_redis, grant_factory):
    store = RedisDocumentStore(memory_redis, key_prefix="gm")
    grant = grant_factory("grant-1")
    await store.save_grant(grant, ttl_seconds=3600)

    key = "gm:docs:grant:Department of Education:grant-1"
    assert memory_redis.ex[key] == 3600
    assert await store.get_grant("Department of Education", "grant-1") == grant
    assert await store.delete_grant("Department of Education", "grant-1") is True
    assert await store.get_grant("Department of Education", "grant-1") is None


@pytest.mark.asyncio
async def test_document_store_ignores_invalid_records(memory_redis):
    store = RedisDocumentStore(memory_redis, key_prefix="gm")
    memory_redis.data["gm:docs:applicant:org-1"] = b'{"owner_id": 5}'
    assert await store.get_applicant("org-1") is None


@pytest.mark.asyncio
async def test_document_store_failure_is_unavailable(memory_redis):
    store = RedisDocumentStore(memory_redis, key_prefix="gm")
    memory_redis.down = True
    with pytest.raises(CollaboratorUnavailableError):
        await store.get_applicant("org-1")
