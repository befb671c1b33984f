"""Main embedding manager that coordinates the configured provider."""

import numpy as np
from typing import Any, Dict, List, Optional

from ...config.logging import LoggerMixin
from ...config.settings import Settings
from ...core.exceptions import ConfigurationError, EmbeddingError
from .api import ApiEmbeddingProvider
from .base import EmbeddingProvider


class EmbeddingManager(LoggerMixin):
    """Converts text into fixed-size vectors.

    Vectors are checked against ``EMBEDDING_DIMENSIONS`` on the way out: a
    provider returning any other size means the model and the collections
    disagree, which is a configuration error rather than a transient one.
    Failures are never retried here.
    """

    def __init__(self, settings: Settings, provider: Optional[EmbeddingProvider] = None):
        self.settings = settings
        self.provider: Optional[EmbeddingProvider] = provider
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the embedding manager with the configured provider."""
        try:
            if self.provider is None:
                self.provider = ApiEmbeddingProvider(self.settings)

            await self.provider.initialize()
            self._initialized = True

            self.logger.info(
                "Embedding manager initialized",
                provider=self.provider.provider_name,
                model=self.settings.EMBEDDING_MODEL,
                dimensions=self.settings.EMBEDDING_DIMENSIONS,
            )

        except EmbeddingError:
            raise
        except Exception as e:
            self.logger.error("Failed to initialize embedding manager", error=str(e))
            raise EmbeddingError(f"Embedding manager initialization failed: {e}")

    async def close(self) -> None:
        """Close the embedding manager."""
        if self.provider:
            await self.provider.close()
            self.provider = None

        self._initialized = False
        self.logger.info("Embedding manager closed")

    def _ensure_initialized(self) -> None:
        """Ensure the embedding manager is initialized."""
        if not self._initialized or not self.provider:
            raise EmbeddingError("Embedding manager not initialized")

    async def embed_text(self, text: str) -> List[float]:
        """Generate embedding for a single text."""
        vectors = await self.embed_texts([text])
        return vectors[0]

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings for multiple texts, preserving input order."""
        self._ensure_initialized()
        if not texts:
            return []

        vectors = await self.provider.embed_texts(texts)
        self._check_dimensions(vectors, len(texts))
        return vectors

    def _check_dimensions(self, vectors: List[List[float]], expected_count: int) -> None:
        expected_dim = self.settings.EMBEDDING_DIMENSIONS
        try:
            matrix = np.asarray(vectors, dtype=np.float64)
        except ValueError:
            raise ConfigurationError(
                "Embedding provider returned vectors of inconsistent size",
                "EMBEDDING_DIMENSIONS",
            )

        if matrix.ndim != 2 or matrix.shape[0] != expected_count:
            raise EmbeddingError(
                f"Expected {expected_count} embeddings, got shape {matrix.shape}"
            )
        if matrix.shape[1] != expected_dim:
            raise ConfigurationError(
                f"Embedding dimension mismatch: expected {expected_dim}, got {matrix.shape[1]}",
                "EMBEDDING_DIMENSIONS",
            )
        if not np.all(np.isfinite(matrix)):
            raise EmbeddingError("Embedding provider returned non-finite values")

    def get_embedding_dimension(self) -> int:
        """Get the dimension of embeddings produced by the model."""
        return self.settings.EMBEDDING_DIMENSIONS

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the embedding model."""
        self._ensure_initialized()
        return self.provider.get_model_info()
