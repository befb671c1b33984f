"""Document registry: logical documents reconstructed from stored chunks."""

from typing import Any, Dict, List, Optional

from qdrant_client import AsyncQdrantClient

from ...config.settings import Settings
from ...core.exceptions import VectorStoreError
from ...models.knowledge import DocumentListResponse, DocumentSummary, is_binary_file_type
from ...utils.validation import validate_limit, validate_offset
from ..filters import tenant_filter

BINARY_PREVIEW = "(Binary file - no preview)"
NO_PREVIEW = "(No preview available)"


def is_printable_start(text: str) -> bool:
    """Whether the first character of a text is printable or common whitespace."""
    return not text or text[0].isprintable() or text[0] in "\t\n\r"


def make_preview(text: Optional[str], file_type: Optional[str], length: int = 200) -> str:
    """Build a preview of a chunk, or a placeholder for binary content."""
    if not text:
        return NO_PREVIEW
    if is_binary_file_type(file_type) or text.startswith("%PDF") or not is_printable_start(text):
        return BINARY_PREVIEW
    if len(text) > length:
        return text[:length] + "..."
    return text


class DocumentOperations:
    """Groups scanned chunks into per-document records."""

    def __init__(self, settings: Settings, logger):
        self.settings = settings
        self.logger = logger

    async def scan(
        self,
        client: AsyncQdrantClient,
        collection_name: str,
        tenant_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Scroll chunk payloads up to ``SCROLL_LIMIT`` points."""
        expression = tenant_filter(tenant_id)
        cap = self.settings.SCROLL_LIMIT
        payloads: List[Dict[str, Any]] = []
        offset = None

        while len(payloads) < cap:
            points, offset = await client.scroll(
                collection_name=collection_name,
                scroll_filter=expression.to_qdrant(),
                limit=min(self.settings.SCROLL_PAGE_SIZE, cap - len(payloads)),
                offset=offset,
                with_payload=True,
                with_vectors=False,
            )
            payloads.extend(point.payload or {} for point in points)
            if offset is None or not points:
                break

        if len(payloads) >= cap:
            self.logger.warning("Chunk scan reached limit", collection=collection_name, limit=cap)
        return payloads

    def group(self, payloads: List[Dict[str, Any]]) -> List[DocumentSummary]:
        """Group chunk payloads by file name, newest upload first."""
        documents: Dict[str, Dict[str, Any]] = {}

        for payload in payloads:
            metadata = payload.get("metadata") or {}
            file_name = metadata.get("fileName")
            if not file_name:
                continue

            record = documents.get(file_name)
            if record is not None:
                record["chunk_count"] += 1
                continue

            file_type = metadata.get("fileType")
            total_chunks = metadata.get("totalChunks") or payload.get("totalChunks") or 1
            documents[file_name] = {
                "file_name": file_name,
                "metadata": metadata,
                "chunk_count": 1,
                "total_chunks": total_chunks,
                "uploaded_at": metadata.get("uploadedAt"),
                "uploaded_by": metadata.get("uploadedBy"),
                "file_type": file_type,
                "file_size": _as_text(metadata.get("fileSize")),
                "preview": make_preview(payload.get("text"), file_type, self.settings.PREVIEW_LENGTH),
            }

        summaries = [DocumentSummary(**record) for record in documents.values()]
        summaries.sort(key=lambda doc: doc.uploaded_at or "", reverse=True)
        return summaries

    async def list_documents(
        self,
        client: AsyncQdrantClient,
        collection_name: str,
        tenant_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> DocumentListResponse:
        """List logical documents, paginated over documents rather than chunks."""
        validate_limit(limit)
        validate_offset(offset)

        try:
            if not await client.collection_exists(collection_name):
                return DocumentListResponse()
            payloads = await self.scan(client, collection_name, tenant_id)
        except Exception as e:
            self.logger.error("Failed to list documents", collection=collection_name, error=str(e))
            raise VectorStoreError(
                f"Failed to list documents in {collection_name}: {e}",
                collection_name,
                "list_documents",
            ) from e

        documents = self.group(payloads)
        page = documents[offset:offset + limit]
        next_offset = offset + limit if offset + limit < len(documents) else None

        self.logger.debug(
            "Listed documents",
            collection=collection_name,
            tenant_id=tenant_id,
            documents=len(page),
            total_documents=len(documents),
        )
        return DocumentListResponse(
            documents=page,
            next_offset=next_offset,
            total_documents=len(documents),
        )

    async def count_documents(
        self,
        client: AsyncQdrantClient,
        collection_name: str,
        tenant_id: Optional[str] = None,
    ) -> int:
        """Count distinct file names; failures count as zero."""
        try:
            if not await client.collection_exists(collection_name):
                return 0
            payloads = await self.scan(client, collection_name, tenant_id)
        except Exception as e:
            self.logger.warning("Failed to count documents", collection=collection_name, error=str(e))
            return 0

        return len({
            (payload.get("metadata") or {}).get("fileName")
            for payload in payloads
        } - {None, ""})


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)
