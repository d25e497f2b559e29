"""Cache key builders.

Keys are content-addressed: identical semantic inputs always give the same
key. Hashes are computed over canonical JSON (sorted keys, compact
separators) so neither argument order nor dict ordering changes the key.
"""

import dataclasses
import hashlib
import json
from datetime import datetime
from typing import Any

from grant_matcher.entities import SearchFilters


def normalize_query(text: str) -> str:
    """Collapse whitespace and case-fold query text."""
    return " ".join(text.split()).casefold()


def _canonical_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


def canonical_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=_canonical_default)


def compute_hash(payload: Any) -> str:
    """SHA-256 over the canonical representation, truncated to 32 hex chars."""
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()[:32]


class CacheKeys:
    """Key catalogue shared by every cache consumer."""

    SEARCH_PREFIX = "search:grants"
    PROFILE_PREFIX = "profile:applicant"
    GRANT_PREFIX = "entity:grant"
    EMBEDDING_PREFIX = "embedding"

    # Everything derived from the grant catalog
    SEARCH_PATTERN = "search:*"

    @classmethod
    def search(
        cls,
        query: str,
        limit: int,
        min_similarity: float,
        applicant_id: str = "",
        filters: SearchFilters | None = None,
    ) -> str:
        """Fingerprint of one search.

        Args:
            query: Query text (normalized before hashing)
            limit: Number of candidates requested from vector search
            min_similarity: Similarity threshold
            applicant_id: Applicant whose eligibility is attached to results
            filters: Hard filters pushed down to vector search
        """
        payload = {
            "query": normalize_query(query),
            "limit": int(limit),
            "min_similarity": round(float(min_similarity), 6),
            "applicant_id": applicant_id,
            "filters": dataclasses.asdict(filters) if filters is not None else None,
        }
        return f"{cls.SEARCH_PREFIX}:{applicant_id or '-'}:{compute_hash(payload)}"

    @classmethod
    def applicant_searches(cls, applicant_id: str) -> str:
        """Pattern matching every cached search for one applicant."""
        return f"{cls.SEARCH_PREFIX}:{applicant_id}:*"

    @classmethod
    def profile(cls, applicant_id: str) -> str:
        return f"{cls.PROFILE_PREFIX}:{applicant_id}"

    @classmethod
    def grant(cls, grant_id: str) -> str:
        return f"{cls.GRANT_PREFIX}:{grant_id}"

    @classmethod
    def embedding(cls, model_name: str, text: str) -> str:
        return f"{cls.EMBEDDING_PREFIX}:{compute_hash({'model': model_name, 'text': text})}"
