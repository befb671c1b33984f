"""Pytest configuration and shared fixtures for Lyceum tests."""

from pathlib import Path
from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio

from lyceum.config.settings import ClusterEndpoint, Settings
from lyceum.rag.database import KnowledgeBase
from lyceum.rag.embeddings import EmbeddingManager
from lyceum.rag.routing import ClusterManager
from tests.utils import FakeEmbeddingProvider, FakeQdrantClient, make_router


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Single-endpoint settings with small vectors and chunks."""
    return Settings(
        _env_file=None,
        SERVER_HOST="127.0.0.1",
        SERVER_PORT=8001,
        DEBUG=True,
        LOG_DIR=tmp_path / "logs",

        QDRANT_DEPLOYMENT_MODE="single",
        QDRANT_URL="http://qdrant-default:6333",

        EMBEDDING_API_BASE="http://mock-embedding-api:4000",
        EMBEDDING_MODEL="text-embedding-3-small",
        EMBEDDING_DIMENSIONS=16,

        CHUNK_MAX_SIZE=400,
        CHUNK_OVERLAP=60,
        CHUNK_MIN_SIZE=40,
        INGEST_BATCH_SIZE=3,
        SCROLL_PAGE_SIZE=4,
        DELETE_BATCH_SIZE=2,

        PROVISION_MAX_RETRIES=2,
        PROVISION_RETRY_BASE_DELAY=0,

        SHARED_TENANT_ID="network",
        ADMIN_PRINCIPALS=["admin@example.com"],
        TENANT_GRANTS={"teacher@example.com": ["school-a"]},
        MCP_ENABLED=False,
    )


@pytest.fixture
def multi_settings(test_settings: Settings) -> Settings:
    """Multi-endpoint settings with a dedicated EU cluster for school-b."""
    return test_settings.model_copy(update={
        "QDRANT_DEPLOYMENT_MODE": "multi",
        "QDRANT_CLUSTERS": {"eu": ClusterEndpoint(url="http://qdrant-eu:6333", region="eu-west")},
        "SCHOOL_CLUSTER_MAPPING": {"school-b": "eu"},
    })


@pytest.fixture
def fake_clients() -> Dict[str, FakeQdrantClient]:
    """Fake Qdrant clients by cluster name, filled in as routers create them."""
    return {}


@pytest.fixture
def router(test_settings: Settings, fake_clients: Dict[str, FakeQdrantClient]) -> ClusterManager:
    return make_router(test_settings, fake_clients)


@pytest.fixture
def fake_client(router: ClusterManager, fake_clients: Dict[str, FakeQdrantClient]) -> FakeQdrantClient:
    """The fake behind the default cluster."""
    return fake_clients["default"]


@pytest.fixture
def embedding_provider(test_settings: Settings) -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider(test_settings)


@pytest_asyncio.fixture
async def embedding_manager(test_settings: Settings, embedding_provider) -> AsyncGenerator[EmbeddingManager, None]:
    manager = EmbeddingManager(test_settings, provider=embedding_provider)
    await manager.initialize()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def knowledge_base(test_settings: Settings, router, embedding_provider) -> AsyncGenerator[KnowledgeBase, None]:
    """Initialized knowledge base on fake clients."""
    kb = KnowledgeBase(
        test_settings,
        router=router,
        embedding_manager=EmbeddingManager(test_settings, provider=embedding_provider),
    )
    await kb.initialize()
    yield kb
    await kb.close()
