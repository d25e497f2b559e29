"""Ollama-based embedding provider.

Uses Ollama's local HTTP API (``POST /api/embed``) to embed grant narratives
and query text when the Redis Stack vector backend is in use.

Requirements:
    - Ollama running: `ollama serve`
    - Model pulled: `ollama pull nomic-embed-text`
"""

import httpx
import structlog

from grant_matcher.config import settings
from grant_matcher.errors import CollaboratorUnavailableError, GrantMatcherError

from .http_errors import raise_for_collaborator_status, transport_error

logger = structlog.get_logger(__name__)

COLLABORATOR = "embedding"


class OllamaEmbeddingProvider:
    """Ollama-based implementation of EmbeddingProvider protocol.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        provider = OllamaEmbeddingProvider.create(model_name="nomic-embed-text")
        embedding = await provider.encode("Community health outreach in rural counties")
        print(len(embedding))  # 768
        ```
    """

    # Known model dimensions (for common models)
    MODEL_DIMENSIONS = {
        "embeddinggemma": 768,
        "nomic-embed-text": 768,
        "mxbai-embed-large": 1024,
        "all-minilm": 384,
    }

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Ollama embedding provider.

        Args:
            model_name: Name of the Ollama model. Defaults to settings.embedding_model.
            base_url: Ollama API base URL. Defaults to settings.ollama_base_url.
            timeout: Request timeout in seconds.
            client: Preconfigured httpx client.
        """
        self._model_name = model_name or settings.embedding_model
        self._base_url = base_url or settings.ollama_base_url
        self._timeout = timeout
        self._dimension: int | None = None
        self._client = client

    @classmethod
    def create(cls, model_name: str | None = None, base_url: str | None = None) -> "OllamaEmbeddingProvider":
        """Factory method to create OllamaEmbeddingProvider with defaults."""
        return cls(model_name=model_name, base_url=base_url)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @property
    def dimension(self) -> int:
        """Vector dimension; known models are looked up, others learned on first encode."""
        if self._dimension is None:
            self._dimension = self.MODEL_DIMENSIONS.get(self._model_name.split(":")[0], 768)
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    async def encode(self, text: str) -> list[float]:
        """Generate embedding vector for a single text.

        Raises:
            CollaboratorUnavailableError: If Ollama cannot be reached or answers 5xx
            CollaboratorRequestError: If Ollama rejects the request (e.g. unknown model)
        """
        payload = {"model": self._model_name, "input": text}
        try:
            response = await self.client.post("/api/embed", json=payload)
        except httpx.HTTPError as e:
            logger.warning("embedding_request_failed", model=self._model_name, error=str(e))
            raise transport_error(COLLABORATOR, e) from e
        raise_for_collaborator_status(COLLABORATOR, response)

        data = response.json()
        # Ollama returns {"embeddings": [[...]]} for single input
        if data.get("embeddings"):
            vector = data["embeddings"][0]
        elif "embedding" in data:
            vector = data["embedding"]
        else:
            raise CollaboratorUnavailableError(COLLABORATOR, f"unexpected response keys {sorted(data)}")

        self._dimension = len(vector)
        return [float(v) for v in vector]

    async def is_available(self) -> bool:
        try:
            await self.encode("test")
        except GrantMatcherError as e:
            logger.info("embedding_provider_unavailable", model=self._model_name, error=str(e))
            return False
        return True

    async def close(self) -> None:
        """Close the async HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
