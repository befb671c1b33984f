"""OpenAI-compatible embedding provider."""

import aiohttp
from typing import Any, Dict, List, Optional

from ...core.exceptions import EmbeddingError
from .base import EmbeddingProvider


class ApiEmbeddingProvider(EmbeddingProvider):
    """Embedding provider for OpenAI-compatible ``/v1/embeddings`` endpoints.

    Every request asks the model for ``EMBEDDING_DIMENSIONS`` outputs, which
    must equal the vector size of the collections being written to.
    """

    def __init__(self, settings):
        super().__init__(settings)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def provider_name(self) -> str:
        return "api"

    async def initialize(self) -> None:
        """Initialize the HTTP session."""
        if not self.settings.EMBEDDING_API_BASE:
            raise EmbeddingError("EMBEDDING_API_BASE required for API provider")

        timeout = aiohttp.ClientTimeout(total=self.settings.EMBEDDING_TIMEOUT_SECONDS)
        self._session = aiohttp.ClientSession(timeout=timeout)
        self._initialized = True

        self.logger.info(
            "API embedding provider initialized",
            api_base=self.settings.EMBEDDING_API_BASE,
            model=self.settings.EMBEDDING_MODEL,
            dimensions=self.settings.EMBEDDING_DIMENSIONS,
        )

    async def close(self) -> None:
        """Close the API embedding provider."""
        if self._session:
            await self._session.close()
            self._session = None

        self._initialized = False
        self.logger.info("API embedding provider closed")

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings using the API."""
        self._ensure_initialized()

        if not texts:
            return []

        if any(not text.strip() for text in texts):
            raise EmbeddingError("Cannot embed empty text")

        embeddings = await self._api_embed_texts(texts)
        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"Provider returned {len(embeddings)} embeddings for {len(texts)} texts"
            )

        self.logger.debug(
            "Texts embedded via API",
            count=len(texts),
            embedding_dim=len(embeddings[0]) if embeddings else 0,
        )
        return embeddings

    def _build_payload(self, texts: List[str]) -> Dict[str, Any]:
        return {
            "model": self.settings.EMBEDDING_MODEL,
            "input": texts,
            "dimensions": self.settings.EMBEDDING_DIMENSIONS,
        }

    async def _api_embed_texts(self, texts: List[str]) -> List[List[float]]:
        """Call the embeddings endpoint."""
        if not self._session:
            raise EmbeddingError("HTTP session not initialized")

        headers = {
            "Content-Type": "application/json"
        }

        if self.settings.EMBEDDING_API_KEY:
            headers["Authorization"] = f"Bearer {self.settings.EMBEDDING_API_KEY}"

        url = f"{self.settings.EMBEDDING_API_BASE.rstrip('/')}/v1/embeddings"

        try:
            async with self._session.post(url, headers=headers, json=self._build_payload(texts)) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise EmbeddingError(f"API request failed: {response.status} - {error_text}")
                data = await response.json()
        except aiohttp.ClientError as e:
            raise EmbeddingError(f"API request error: {e}")

        try:
            # The API may return items out of order; ``index`` is authoritative.
            items = sorted(data["data"], key=lambda item: item.get("index", 0))
            return [item["embedding"] for item in items]
        except (KeyError, TypeError) as e:
            raise EmbeddingError(f"Malformed embedding response: {e}")

    def get_model_info(self) -> Dict:
        """Get API provider model information."""
        info = super().get_model_info()
        info["api_base"] = self.settings.EMBEDDING_API_BASE
        return info
