"""Collection listing and removal."""

from typing import List

from qdrant_client import AsyncQdrantClient

from ...config.settings import Settings
from ...core.exceptions import VectorStoreError


class CollectionOperations:
    """Lists and drops physical collections on one endpoint."""

    def __init__(self, settings: Settings, logger):
        self.settings = settings
        self.logger = logger

    async def list_physical(self, client: AsyncQdrantClient) -> List[str]:
        """Names of every collection on an endpoint; empty on failure."""
        try:
            response = await client.get_collections()
        except Exception as e:
            self.logger.warning("Failed to list collections", error=str(e))
            return []
        return [collection.name for collection in response.collections]

    async def delete_collection(self, client: AsyncQdrantClient, collection_name: str) -> bool:
        """Drop a collection. Already-absent collections count as deleted."""
        try:
            if not await client.collection_exists(collection_name):
                self.logger.info("Collection already absent", collection=collection_name)
                return True
            await client.delete_collection(collection_name=collection_name)
        except Exception as e:
            self.logger.error("Failed to delete collection", collection=collection_name, error=str(e))
            raise VectorStoreError(
                f"Failed to delete collection {collection_name}: {e}",
                collection_name,
                "delete_collection",
            ) from e

        self.logger.info("Deleted collection", collection=collection_name)
        return True
