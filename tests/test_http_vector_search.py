"""
Tests for the HTTP entity-matching client, using httpx.MockTransport.
"""

import json

import httpx
import pytest

from grant_matcher.entities import AttributePredicate, PredicateOperator
from grant_matcher.errors import CollaboratorRequestError, CollaboratorUnavailableError, RateLimitedError
from grant_matcher.repositories import HttpVectorSearchClient
from grant_matcher.repositories.http_vector_search import predicate_to_wire


def make_client(handler) -> HttpVectorSearchClient:
    transport = httpx.MockTransport(handler)
    client = httpx.AsyncClient(transport=transport, base_url="https://matching.test")
    return HttpVectorSearchClient(
        base_url="https://matching.test",
        api_key="secret",
        embedding_model="nomic-embed-text",
        client=client,
    )


PREDICATE = [
    AttributePredicate("attributes.eligibleStates", PredicateOperator.CONTAINS_OR_EMPTY, "CA"),
    AttributePredicate("attributes.applicantTypes", PredicateOperator.CONTAINS_OR_EMPTY, ["nonprofit"]),
]


def test_predicate_wire_format():
    assert predicate_to_wire([]) is None
    assert predicate_to_wire(PREDICATE) == {
        "logicalOperator": "And",
        "filters": [
            {"fieldPath": "attributes.eligibleStates", "operator": "ContainsOrEmpty", "value": "CA"},
            {"fieldPath": "attributes.applicantTypes", "operator": "ContainsOrEmpty", "value": ["nonprofit"]},
        ],
    }


@pytest.mark.asyncio
async def test_search_request_and_response():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "results": [
                    {
                        "profileId": "entity-1",
                        "similarity": 0.91,
                        "profile": {
                            "name": "Literacy Grant",
                            "description": "After-school reading",
                            "attributes": {"grantId": "grant-1", "eligibleStates": ["CA"]},
                        },
                    },
                    {"similarity": 0.5, "profile": {}},
                ]
            },
        )

    client = make_client(handler)
    candidates = await client.search("literacy", PREDICATE, 0.6, 25)

    assert captured["path"] == "/profiles/search"
    assert captured["body"]["query"] == "literacy"
    assert captured["body"]["minSimilarity"] == 0.6
    assert captured["body"]["limit"] == 25
    assert captured["body"]["attributeFilters"]["logicalOperator"] == "And"
    assert len(candidates) == 1
    assert candidates[0].entity_id == "entity-1"
    assert candidates[0].similarity == 0.91
    assert candidates[0].attributes["grantId"] == "grant-1"


@pytest.mark.asyncio
async def test_rate_limit_carries_retry_after():
    client = make_client(lambda request: httpx.Response(429, headers={"Retry-After": "7"}))
    with pytest.raises(RateLimitedError) as raised:
        await client.search("literacy", [], 0.6, 10)
    assert raised.value.retry_after == 7.0
    assert raised.value.retryable


@pytest.mark.asyncio
async def test_server_error_is_unavailable():
    client = make_client(lambda request: httpx.Response(503, text="maintenance"))
    with pytest.raises(CollaboratorUnavailableError) as raised:
        await client.search("literacy", [], 0.6, 10)
    assert not isinstance(raised.value, RateLimitedError)


@pytest.mark.asyncio
async def test_client_error_is_not_retryable():
    client = make_client(lambda request: httpx.Response(400, text="bad filter"))
    with pytest.raises(CollaboratorRequestError) as raised:
        await client.search("literacy", [], 0.6, 10)
    assert raised.value.status_code == 400
    assert not raised.value.retryable


@pytest.mark.asyncio
async def test_transport_failure_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = make_client(handler)
    with pytest.raises(CollaboratorUnavailableError) as raised:
        await client.search("literacy", [], 0.6, 10)
    assert raised.value.message == "request timed out"


@pytest.mark.asyncio
async def test_invalid_json_is_unavailable():
    client = make_client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(CollaboratorUnavailableError):
        await client.search("literacy", [], 0.6, 10)


@pytest.mark.asyncio
async def test_store_entity_and_upload_vector():
    requests: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append((request.url.path, json.loads(request.content)))
        if request.url.path == "/profiles":
            return httpx.Response(201, json={"id": "entity-42"})
        return httpx.Response(204)

    client = make_client(handler)
    entity_id = await client.store_entity({"grantId": "grant-1"}, "After-school reading", name="Literacy")
    await client.upload_vector(entity_id, [0.1, 0.2])

    assert entity_id == "entity-42"
    assert requests[0][1]["entityType"] == 3
    assert requests[0][1]["attributes"] == {"grantId": "grant-1"}
    assert requests[1] == (
        "/profiles/entity-42/embeddings/upload",
        {"embedding": [0.1, 0.2], "embeddingModel": "nomic-embed-text"},
    )


@pytest.mark.asyncio
async def test_store_entity_without_id_is_unavailable():
    client = make_client(lambda request: httpx.Response(200, json={}))
    with pytest.raises(CollaboratorUnavailableError):
        await client.store_entity({}, "text")


@pytest.mark.asyncio
async def test_delete_missing_entity_is_not_an_error():
    client = make_client(lambda request: httpx.Response(404))
    await client.delete_entity("entity-1")
    await client.close()
