"""Local sentence-transformers embedding provider.

Runs the model in-process; encoding is CPU-bound and is moved off the event
loop with ``asyncio.to_thread``.
"""

import asyncio
import threading
import time

import numpy as np
import structlog
from sentence_transformers import SentenceTransformer

from grant_matcher.config import settings

logger = structlog.get_logger(__name__)

DEFAULT_LOCAL_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class LocalEmbeddingProvider:
    """Local sentence-transformers implementation of EmbeddingProvider.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(self, model_name: str | None = None) -> None:
        """Initialize the local embedding provider.

        Args:
            model_name: Name of the sentence-transformers model.
        """
        self._model_name = model_name or DEFAULT_LOCAL_MODEL
        self._model: SentenceTransformer | None = None
        self._load_lock = threading.Lock()

    @classmethod
    def create(cls, model_name: str | None = None) -> "LocalEmbeddingProvider":
        """Factory method; an Ollama model name in settings is not reused here."""
        configured = settings.embedding_model
        return cls(model_name=model_name or (configured if "/" in configured else None))

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the embedding model."""
        with self._load_lock:
            if self._model is None:
                started = time.perf_counter()
                self._model = SentenceTransformer(self._model_name)
                logger.info(
                    "embedding_model_loaded",
                    model=self._model_name,
                    load_seconds=round(time.perf_counter() - started, 2),
                )
        return self._model

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    @property
    def model_name(self) -> str:
        return self._model_name

    def _encode_sync(self, text: str) -> list[float]:
        embedding = self.model.encode(text, show_progress_bar=False, normalize_embeddings=True)
        if isinstance(embedding, np.ndarray):
            if embedding.ndim == 1:
                return embedding.tolist()
            return embedding[0].tolist()
        return list(embedding)

    async def encode(self, text: str) -> list[float]:
        return await asyncio.to_thread(self._encode_sync, text)

    async def encode_batch(self, texts: list[str], batch_size: int = 32) -> list[list[float]]:
        """Embed many texts in one model call."""

        def run() -> list[list[float]]:
            embeddings = self.model.encode(
                texts,
                batch_size=batch_size,
                show_progress_bar=False,
                normalize_embeddings=True,
            )
            return embeddings.tolist()

        return await asyncio.to_thread(run)

    async def is_available(self) -> bool:
        try:
            await asyncio.to_thread(lambda: self.model)
        except (OSError, RuntimeError, ValueError) as e:
            logger.info("embedding_provider_unavailable", model=self._model_name, error=str(e))
            return False
        return True
