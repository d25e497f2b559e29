"""Vector search service protocol.

The matching engine never ranks by vector similarity itself; it sends the
query text plus a conjunctive attribute predicate to this collaborator and
receives scored candidates back.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from grant_matcher.entities import AttributePredicate, SearchCandidate


@runtime_checkable
class VectorSearchService(Protocol):
    """Protocol for vector search backends."""

    async def search(
        self,
        query_text: str,
        predicate: Sequence[AttributePredicate],
        min_similarity: float,
        limit: int,
    ) -> list[SearchCandidate]:
        """Find entities semantically similar to the query.

        Args:
            query_text: Free-text query
            predicate: Conjunctive attribute filter
            min_similarity: Minimum similarity in [0, 1]
            limit: Maximum number of candidates

        Returns:
            Candidates with their attribute bags, most similar first

        Raises:
            CollaboratorUnavailableError: If the service cannot be reached
            RateLimitedError: If the service throttled the call
        """
        ...

    async def store_entity(
        self,
        attributes: Mapping[str, Any],
        narrative_text: str,
        name: str = "",
    ) -> str:
        """Store an entity and return its identifier."""
        ...

    async def upload_vector(self, entity_id: str, vector: list[float]) -> None:
        """Attach an embedding vector to a stored entity."""
        ...

    async def delete_entity(self, entity_id: str) -> None:
        """Remove a stored entity."""
        ...
