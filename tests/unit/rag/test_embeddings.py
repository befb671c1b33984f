"""Tests for embedding generation."""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from lyceum.core.exceptions import ConfigurationError, EmbeddingError
from lyceum.rag.embeddings import EmbeddingManager
from lyceum.rag.embeddings.api import ApiEmbeddingProvider
from tests.utils import FakeEmbeddingProvider, hashed_embedding


def mock_response(status=200, json_data=None, text=""):
    """Async context manager standing in for ``session.post(...)``."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_data)
    response.text = AsyncMock(return_value=text)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


class TestApiEmbeddingProvider:
    """Test the OpenAI-compatible provider."""

    @pytest.fixture
    def provider(self, test_settings):
        provider = ApiEmbeddingProvider(test_settings)
        provider._session = MagicMock()
        provider._initialized = True
        return provider

    async def test_requests_configured_dimensions(self, provider, test_settings):
        vectors = [[0.1] * 16, [0.2] * 16]
        provider._session.post.return_value = mock_response(json_data={
            "data": [{"index": 0, "embedding": vectors[0]}, {"index": 1, "embedding": vectors[1]}]
        })

        result = await provider.embed_texts(["first", "second"])

        assert result == vectors
        url = provider._session.post.call_args.args[0]
        payload = provider._session.post.call_args.kwargs["json"]
        assert url == "http://mock-embedding-api:4000/v1/embeddings"
        assert payload == {
            "model": test_settings.EMBEDDING_MODEL,
            "input": ["first", "second"],
            "dimensions": 16,
        }

    async def test_orders_results_by_index(self, provider):
        provider._session.post.return_value = mock_response(json_data={
            "data": [
                {"index": 2, "embedding": [2.0]},
                {"index": 0, "embedding": [0.0]},
                {"index": 1, "embedding": [1.0]},
            ]
        })

        result = await provider.embed_texts(["a", "b", "c"])

        assert result == [[0.0], [1.0], [2.0]]

    async def test_sends_bearer_token(self, provider, test_settings):
        test_settings.EMBEDDING_API_KEY = "sk-test"
        provider._session.post.return_value = mock_response(json_data={"data": [{"index": 0, "embedding": [1.0]}]})

        await provider.embed_texts(["a"])

        headers = provider._session.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer sk-test"

    async def test_http_error_raises(self, provider):
        provider._session.post.return_value = mock_response(status=429, text="rate limited")

        with pytest.raises(EmbeddingError, match="429"):
            await provider.embed_texts(["a"])

    async def test_transport_error_raises(self, provider):
        provider._session.post.side_effect = aiohttp.ClientConnectionError("refused")

        with pytest.raises(EmbeddingError, match="refused"):
            await provider.embed_texts(["a"])

    async def test_malformed_response_raises(self, provider):
        provider._session.post.return_value = mock_response(json_data={"unexpected": []})

        with pytest.raises(EmbeddingError, match="Malformed"):
            await provider.embed_texts(["a"])

    async def test_count_mismatch_raises(self, provider):
        provider._session.post.return_value = mock_response(json_data={"data": [{"index": 0, "embedding": [1.0]}]})

        with pytest.raises(EmbeddingError):
            await provider.embed_texts(["a", "b"])

    async def test_empty_text_rejected(self, provider):
        with pytest.raises(EmbeddingError, match="empty"):
            await provider.embed_texts(["ok", "  "])
        provider._session.post.assert_not_called()

    async def test_not_initialized(self, test_settings):
        with pytest.raises(EmbeddingError, match="not initialized"):
            await ApiEmbeddingProvider(test_settings).embed_texts(["a"])


class TestEmbeddingManager:
    """Test the embedding manager."""

    async def test_embed_texts_preserves_order(self, embedding_manager):
        texts = ["photosynthesis in plants", "the french revolution", "prime numbers"]

        vectors = await embedding_manager.embed_texts(texts)

        assert vectors == [hashed_embedding(text, 16) for text in texts]

    async def test_embed_text(self, embedding_manager):
        vector = await embedding_manager.embed_text("cells divide")
        assert len(vector) == embedding_manager.get_embedding_dimension() == 16

    async def test_empty_batch(self, embedding_manager, embedding_provider):
        assert await embedding_manager.embed_texts([]) == []
        assert embedding_provider.batches == []

    async def test_dimension_mismatch_is_configuration_error(self, test_settings):
        manager = EmbeddingManager(test_settings, provider=FakeEmbeddingProvider(test_settings, dimensions=1536))
        await manager.initialize()

        with pytest.raises(ConfigurationError) as exc_info:
            await manager.embed_texts(["text"])

        assert exc_info.value.details["config_key"] == "EMBEDDING_DIMENSIONS"

    async def test_provider_errors_propagate(self, test_settings):
        failing = FakeEmbeddingProvider(test_settings, fail=EmbeddingError("provider down"))
        manager = EmbeddingManager(test_settings, provider=failing)
        await manager.initialize()

        with pytest.raises(EmbeddingError, match="provider down"):
            await manager.embed_texts(["text"])

    async def test_non_finite_values_rejected(self, test_settings):
        provider = FakeEmbeddingProvider(test_settings)
        provider.embed_texts = AsyncMock(return_value=[[float("nan")] * 16])
        manager = EmbeddingManager(test_settings, provider=provider)
        await manager.initialize()

        with pytest.raises(EmbeddingError, match="non-finite"):
            await manager.embed_texts(["text"])

    async def test_requires_initialization(self, test_settings):
        manager = EmbeddingManager(test_settings, provider=FakeEmbeddingProvider(test_settings))

        with pytest.raises(EmbeddingError, match="not initialized"):
            await manager.embed_text("text")

    async def test_defaults_to_api_provider(self, test_settings):
        manager = EmbeddingManager(test_settings)
        await manager.initialize()
        try:
            assert isinstance(manager.provider, ApiEmbeddingProvider)
            assert manager.get_model_info()["dimension"] == 16
        finally:
            await manager.close()

    async def test_close(self, embedding_manager):
        await embedding_manager.close()
        assert embedding_manager.provider is None
