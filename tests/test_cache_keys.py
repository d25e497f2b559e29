"""
Tests for cache key fingerprints.
"""

from datetime import datetime, timezone

from grant_matcher.entities import SearchFilters
from grant_matcher.services import CacheKeys, canonical_json, compute_hash, normalize_query


def test_query_normalization():
    assert normalize_query("  After-School   LITERACY ") == "after-school literacy"


def test_equivalent_queries_share_a_key():
    a = CacheKeys.search("after-school literacy", 100, 0.6, applicant_id="org-1")
    b = CacheKeys.search("  After-School  Literacy", 100, 0.6, applicant_id="org-1")
    assert a == b


def test_key_changes_with_each_input():
    base = CacheKeys.search("literacy", 100, 0.6, applicant_id="org-1")
    assert CacheKeys.search("literacy", 50, 0.6, applicant_id="org-1") != base
    assert CacheKeys.search("literacy", 100, 0.7, applicant_id="org-1") != base
    assert CacheKeys.search("literacy", 100, 0.6, applicant_id="org-2") != base
    assert (
        CacheKeys.search("literacy", 100, 0.6, applicant_id="org-1", filters=SearchFilters(min_award_amount=5_000))
        != base
    )


def test_search_keys_are_grouped_by_applicant():
    key = CacheKeys.search("literacy", 100, 0.6, applicant_id="org-1")
    assert key.startswith("search:grants:org-1:")
    assert CacheKeys.applicant_searches("org-1") == "search:grants:org-1:*"
    assert CacheKeys.search("literacy", 100, 0.6).startswith("search:grants:-:")


def test_canonical_json_ignores_key_order():
    assert canonical_json({"b": 1, "a": 2}) == canonical_json({"a": 2, "b": 1})
    assert compute_hash({"b": 1, "a": 2}) == compute_hash({"a": 2, "b": 1})


def test_canonical_json_handles_datetimes():
    when = datetime(2025, 1, 2, tzinfo=timezone.utc)
    assert canonical_json({"at": when}) == '{"at":"2025-01-02T00:00:00+00:00"}'


def test_hash_length():
    assert len(compute_hash({"x": 1})) == 32


def test_embedding_key_depends_on_model():
    assert CacheKeys.embedding("model-a", "text") != CacheKeys.embedding("model-b", "text")
    assert CacheKeys.embedding("model-a", "text").startswith("embedding:")
