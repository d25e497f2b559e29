"""Repository layer: collaborator implementations.

Each class here satisfies one protocol from ``grant_matcher.protocols``
through structural typing. Transport failures are translated into
``grant_matcher.errors`` at this boundary so services never see httpx or
redis exceptions.

``LocalEmbeddingProvider`` is not re-exported: importing it loads
sentence-transformers, so it is imported only when selected.
"""

from .cached_embedding_provider import CachedEmbeddingProvider
from .http_conversation_provider import HttpConversationProvider, insights_to_attributes
from .http_vector_search import HttpVectorSearchClient, predicate_to_wire
from .ollama_embedding_provider import OllamaEmbeddingProvider
from .redis_cache_tier import RedisCacheTier
from .redis_document_store import RedisDocumentStore
from .redis_vector_search import RedisVectorSearch, predicate_to_filter

__all__ = [
    "CachedEmbeddingProvider",
    "HttpConversationProvider",
    "HttpVectorSearchClient",
    "OllamaEmbeddingProvider",
    "RedisCacheTier",
    "RedisDocumentStore",
    "RedisVectorSearch",
    "insights_to_attributes",
    "predicate_to_filter",
    "predicate_to_wire",
]
