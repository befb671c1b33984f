"""Removal of every chunk of a logical document."""

from typing import List, Optional, Union

from qdrant_client import AsyncQdrantClient, models

from ...config.settings import Settings
from ...core.exceptions import DeletionError
from ..filters import FilterExpression, document_filter

PointId = Union[int, str]


class DeletionOperations:
    """Deletes documents with a filtered delete, or a scan when that fails.

    Both paths select exactly the chunks whose ``fileName`` matches and,
    when a tenant is given, whose ``schoolId`` matches too.
    """

    def __init__(self, settings: Settings, logger):
        self.settings = settings
        self.logger = logger

    async def delete_document(
        self,
        client: AsyncQdrantClient,
        collection_name: str,
        file_name: str,
        tenant_id: Optional[str] = None,
    ) -> bool:
        """Delete all chunks of a document; raises DeletionError if nothing worked."""
        expression = document_filter(file_name, tenant_id)

        try:
            await client.delete(
                collection_name=collection_name,
                points_selector=models.FilterSelector(filter=expression.to_qdrant()),
                wait=True,
            )
            self.logger.info(
                "Deleted document", collection=collection_name, file_name=file_name, tenant_id=tenant_id
            )
            return True
        except Exception as e:
            self.logger.warning(
                "Filtered delete failed, falling back to scan",
                collection=collection_name,
                file_name=file_name,
                error=str(e),
            )

        try:
            deleted = await self.delete_by_scan(client, collection_name, expression)
        except Exception as e:
            self.logger.error(
                "Failed to delete document", collection=collection_name, file_name=file_name, error=str(e)
            )
            raise DeletionError(f"Failed to delete {file_name}: {e}", file_name, collection_name) from e

        self.logger.info(
            "Deleted document by scan",
            collection=collection_name,
            file_name=file_name,
            tenant_id=tenant_id,
            chunks=deleted,
        )
        return True

    async def delete_by_scan(
        self,
        client: AsyncQdrantClient,
        collection_name: str,
        expression: FilterExpression,
    ) -> int:
        """Scan every chunk, match payloads in memory and delete matches by id."""
        matching: List[PointId] = []
        offset = None

        while True:
            points, offset = await client.scroll(
                collection_name=collection_name,
                limit=self.settings.SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
                with_vectors=False,
            )
            matching.extend(point.id for point in points if expression.matches(point.payload))
            if offset is None or not points:
                break

        batch_size = self.settings.DELETE_BATCH_SIZE
        for start in range(0, len(matching), batch_size):
            batch = matching[start:start + batch_size]
            await client.delete(
                collection_name=collection_name,
                points_selector=models.PointIdsList(points=batch),
                wait=True,
            )
            self.logger.debug("Deleted chunk batch", collection=collection_name, chunks=len(batch))

        return len(matching)
