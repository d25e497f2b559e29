"""Embedding provider protocol.

Defines the interface for any embedding generation service that can
convert text to vector embeddings. Providers must be deterministic for
identical text so that embeddings can be cached for a long time.

Implementations can include:
- Ollama (HTTP, default)
- sentence-transformers (local)
- OpenAI embeddings (API)
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding generation services."""

    @property
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""
        ...

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the model."""
        ...

    async def encode(self, text: str) -> list[float]:
        """Generate embedding vector for a single text.

        Args:
            text: The text to encode

        Returns:
            The embedding vector as a list of floats

        Raises:
            CollaboratorUnavailableError: If the provider cannot be reached
        """
        ...

    async def is_available(self) -> bool:
        """Check if the embedding provider is available."""
        ...
