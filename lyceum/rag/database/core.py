"""Knowledge base coordinator with lifecycle management."""

from typing import List, Optional

from qdrant_client import AsyncQdrantClient

from ...config.logging import LoggerMixin
from ...config.settings import Settings
from ...core.exceptions import LyceumError, RAGError
from ...models.knowledge import (
    DocumentListResponse,
    DocumentMetadata,
    IngestionResult,
    KnowledgeSearchResult,
    SearchStrategy,
)
from ..embeddings import EmbeddingManager
from ..routing import ClusterManager
from .collections import CollectionOperations
from .deletion import DeletionOperations
from .documents import DocumentOperations
from .ingestion import IngestionOperations, ProgressCallback
from .provisioning import CollectionProvisioner
from .search import SearchOperations


class KnowledgeBase(LoggerMixin):
    """Multi-tenant knowledge base on top of Qdrant.

    Operations take physical collection names; the router picks the
    endpoint that holds them. Work is delegated to one handler per concern.
    """

    def __init__(
        self,
        settings: Settings,
        router: Optional[ClusterManager] = None,
        embedding_manager: Optional[EmbeddingManager] = None,
    ):
        self.settings = settings
        self.router = router
        self.embedding_manager = embedding_manager
        self._initialized = False

        # Delegate operation handlers
        self._provisioner: Optional[CollectionProvisioner] = None
        self._ingestion: Optional[IngestionOperations] = None
        self._search: Optional[SearchOperations] = None
        self._documents: Optional[DocumentOperations] = None
        self._deletion: Optional[DeletionOperations] = None
        self._collections: Optional[CollectionOperations] = None

    async def initialize(self) -> None:
        """Initialize clients and operation handlers."""
        try:
            if self.router is None:
                self.router = ClusterManager(self.settings)

            if self.embedding_manager is None:
                self.embedding_manager = EmbeddingManager(self.settings)
            await self.embedding_manager.initialize()

            self._provisioner = CollectionProvisioner(self.settings, self.logger)
            self._ingestion = IngestionOperations(
                self._provisioner, self.embedding_manager, self.settings, self.logger
            )
            self._search = SearchOperations(
                self.router, self.embedding_manager, self.settings, self.logger
            )
            self._documents = DocumentOperations(self.settings, self.logger)
            self._deletion = DeletionOperations(self.settings, self.logger)
            self._collections = CollectionOperations(self.settings, self.logger)

            self._initialized = True

            self.logger.info(
                "Knowledge base initialized",
                mode=self.settings.QDRANT_DEPLOYMENT_MODE,
                clusters=self.router.cluster_names,
            )

        except LyceumError:
            raise
        except Exception as e:
            self.logger.error("Failed to initialize knowledge base", error=str(e))
            raise RAGError(f"Knowledge base initialization failed: {e}")

    async def close(self) -> None:
        """Close the knowledge base."""
        if self.embedding_manager:
            await self.embedding_manager.close()
        if self.router:
            await self.router.close()

        self._provisioner = None
        self._ingestion = None
        self._search = None
        self._documents = None
        self._deletion = None
        self._collections = None
        self._initialized = False
        self.logger.info("Knowledge base closed")

    def _ensure_initialized(self) -> None:
        if not self._initialized or self.router is None:
            raise RAGError("Knowledge base not initialized")

    def _client(self, collection_name: str, tenant_id: Optional[str]) -> AsyncQdrantClient:
        return self.router.client_for_collection(collection_name, tenant_id)

    def physical_name(self, tenant_id: str, collection: str, cluster_override: Optional[str] = None) -> str:
        """Physical collection name of a tenant's logical collection."""
        self._ensure_initialized()
        return self.router.physical_name(tenant_id, collection, cluster_override)

    async def ensure_collection(self, collection_name: str, tenant_id: Optional[str] = None) -> bool:
        """Create a physical collection if it does not exist yet."""
        self._ensure_initialized()
        return await self._provisioner.ensure_collection(
            self._client(collection_name, tenant_id), collection_name
        )

    async def ingest(
        self,
        content: str,
        metadata: DocumentMetadata,
        collection_name: str,
        batch_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> IngestionResult:
        """Chunk, embed and store a document."""
        self._ensure_initialized()
        client = self._client(collection_name, metadata.school_id)
        return await self._ingestion.ingest(
            client, content, metadata, collection_name, batch_size, on_progress
        )

    async def search(
        self,
        query: str,
        collections: List[str],
        limit: Optional[int] = None,
        tenant_id: Optional[str] = None,
        strategy: Optional[SearchStrategy] = None,
    ) -> List[KnowledgeSearchResult]:
        """Rank chunks across the collections of a scope."""
        self._ensure_initialized()
        return await self._search.search(query, collections, limit, tenant_id, strategy)

    async def list_documents(
        self,
        collection_name: str,
        tenant_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> DocumentListResponse:
        """List the logical documents stored in a collection."""
        self._ensure_initialized()
        return await self._documents.list_documents(
            self._client(collection_name, tenant_id), collection_name, tenant_id, limit, offset
        )

    async def count_documents(self, collection_name: str, tenant_id: Optional[str] = None) -> int:
        """Count the logical documents stored in a collection."""
        self._ensure_initialized()
        return await self._documents.count_documents(
            self._client(collection_name, tenant_id), collection_name, tenant_id
        )

    async def delete_document(
        self,
        collection_name: str,
        file_name: str,
        tenant_id: Optional[str] = None,
    ) -> bool:
        """Remove every chunk of a logical document."""
        self._ensure_initialized()
        return await self._deletion.delete_document(
            self._client(collection_name, tenant_id), collection_name, file_name, tenant_id
        )

    async def delete_collection(self, collection_name: str, tenant_id: Optional[str] = None) -> bool:
        """Drop a physical collection."""
        self._ensure_initialized()
        return await self._collections.delete_collection(
            self._client(collection_name, tenant_id), collection_name
        )

    async def list_collections(self, tenant_id: Optional[str] = None, is_admin: bool = False) -> List[str]:
        """Display names of the collections visible to a tenant."""
        self._ensure_initialized()
        if is_admin:
            clients = self.router.all_clients()
        else:
            clients = [self.router.get_client(tenant_id)]
            shared = self.settings.SHARED_TENANT_ID
            if shared:
                clients.append(self.router.get_client(shared))

        physical: List[str] = []
        seen = set()
        for client in clients:
            if id(client) in seen:
                continue
            seen.add(id(client))
            physical.extend(await self._collections.list_physical(client))

        return self.router.display_names(physical, tenant_id, is_admin)
