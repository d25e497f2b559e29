"""Protocol interfaces for the external collaborators.

This package contains protocol definitions using structural typing.
Protocols enable:
- Swapping implementations (HTTP entity matching → Redis Stack, Ollama → local, etc.)
- Unit testing with fake implementations
- One place that says what the matching engine needs from the outside world

Usage:
    ```python
    from grant_matcher.protocols import VectorSearchService

    search: VectorSearchService = HttpVectorSearchClient.create()
    search: VectorSearchService = RedisVectorSearch.create(embedding_provider=...)
    ```
"""

from .cache_tier import DistributedCacheTier
from .conversation_provider import ConversationProvider, ConversationReply
from .document_store import DocumentStore
from .embedding_provider import EmbeddingProvider
from .vector_search import VectorSearchService

__all__ = [
    "ConversationProvider",
    "ConversationReply",
    "DistributedCacheTier",
    "DocumentStore",
    "EmbeddingProvider",
    "VectorSearchService",
]
