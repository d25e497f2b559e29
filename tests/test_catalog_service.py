"""
Tests for grant catalog maintenance.
"""

import pytest

from grant_matcher.errors import InvalidRequestError, NotFoundError
from grant_matcher.services import BackgroundTaskQueue, CacheKeys, CacheService, CatalogService


@pytest.fixture
def cache():
    return CacheService(default_absolute_ttl=600, default_sliding_ttl=300)


@pytest.fixture
def catalog(store, vector_search, cache):
    return CatalogService(store, vector_search, cache=cache, retention_days=30)


@pytest.mark.asyncio
async def test_publish_stores_grant_and_entity(catalog, store, vector_search, grant_factory):
    stored = await catalog.publish_grant(grant_factory("grant-1"))

    assert stored.entity_id == "entity-1"
    assert stored.created_at is not None
    assert store.grants[("Department of Education", "grant-1")] == stored
    assert store.grant_ttls[("Department of Education", "grant-1")] == 30 * 24 * 60 * 60
    entity = vector_search.stored["entity-1"]
    assert entity["attributes"]["grantId"] == "grant-1"
    assert entity["narrative"] == "Supports after-school literacy programs."
    assert vector_search.vectors == {}


@pytest.mark.asyncio
async def test_publish_uploads_vectors_when_embedding_here(store, vector_search, cache, embeddings, grant_factory):
    catalog = CatalogService(store, vector_search, cache=cache, embeddings=embeddings)
    await catalog.publish_grant(grant_factory("grant-1"))

    assert embeddings.calls == ["Supports after-school literacy programs."]
    assert list(vector_search.vectors) == ["entity-1"]


@pytest.mark.asyncio
async def test_publish_invalidates_cached_searches(catalog, cache, grant_factory):
    key = CacheKeys.search("literacy", 100, 0.6, applicant_id="org-1")
    await cache.set(key, {"matches": []})
    await cache.set(CacheKeys.profile("org-1"), {"id": "org-1"})

    await catalog.publish_grant(grant_factory("grant-1"))

    assert await cache.get(key) is None
    assert await cache.get(CacheKeys.profile("org-1")) is not None


@pytest.mark.asyncio
async def test_publish_invalidates_before_returning_with_running_queue(store, vector_search, cache, grant_factory):
    background = BackgroundTaskQueue(max_size=10, workers=1)
    await background.start()
    catalog = CatalogService(
        store,
        vector_search,
        cache=cache,
        background=background,
        invalidation_followup_seconds=0.01,
    )
    key = CacheKeys.search("literacy", 100, 0.6, applicant_id="org-1")
    await cache.set(key, {"matches": []})

    await catalog.publish_grant(grant_factory("grant-1"))
    assert await cache.get(key) is None

    await cache.set(key, {"matches": []})
    await background.stop()

    assert await cache.get(key) is None
    assert background.stats()["completed"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"id": " "}, "id"),
        ({"agency": ""}, "agency"),
        ({"eligible_states": ["XX"]}, "eligible_states"),
        ({"award_ceiling": -1.0}, "award_ceiling"),
        ({"award_floor": 20_000.0, "award_ceiling": 10_000.0}, "award_floor"),
    ],
)
async def test_publish_rejects_invalid_grants(catalog, grant_factory, overrides, field):
    with pytest.raises(InvalidRequestError) as raised:
        await catalog.publish_grant(grant_factory("grant-1", **overrides))
    assert raised.value.field == field


@pytest.mark.asyncio
async def test_get_grant_is_cached(catalog, store, grant_factory):
    stored = await catalog.publish_grant(grant_factory("grant-1"))
    first = await catalog.get_grant("Department of Education", "grant-1")

    del store.grants[("Department of Education", "grant-1")]
    second = await catalog.get_grant("Department of Education", "grant-1")

    assert first == stored
    assert second == stored


@pytest.mark.asyncio
async def test_get_grant_checks_agency(catalog, grant_factory):
    await catalog.publish_grant(grant_factory("grant-1"))
    with pytest.raises(NotFoundError):
        await catalog.get_grant("Department of Energy", "grant-1")


@pytest.mark.asyncio
async def test_remove_grant(catalog, store, vector_search, grant_factory):
    await catalog.publish_grant(grant_factory("grant-1"))
    await catalog.remove_grant("Department of Education", "grant-1")

    assert vector_search.deleted == ["entity-1"]
    assert store.grants == {}
    with pytest.raises(NotFoundError):
        await catalog.get_grant("Department of Education", "grant-1")


@pytest.mark.asyncio
async def test_remove_unknown_grant(catalog):
    with pytest.raises(NotFoundError):
        await catalog.remove_grant("Department of Education", "nope")


@pytest.mark.asyncio
async def test_bulk_publish_runs_in_background(store, vector_search, cache, grant_factory):
    background = BackgroundTaskQueue(max_size=10, workers=1)
    await background.start()
    catalog = CatalogService(store, vector_search, cache=cache, background=background)
    key = CacheKeys.search("literacy", 100, 0.6, applicant_id="org-1")
    await cache.set(key, {"matches": []})

    queued = catalog.publish_grants_in_background([grant_factory(f"grant-{i}") for i in range(5)], batch_size=2)
    await background.join()
    await background.stop()

    assert queued == 5
    assert len(store.grants) == 5
    assert len(vector_search.stored) == 5
    assert await cache.get(key) is None


def test_bulk_publish_requires_queue(catalog, grant_factory):
    with pytest.raises(InvalidRequestError):
        catalog.publish_grants_in_background([grant_factory()])
