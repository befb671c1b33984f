"""Principal-aware facade over the knowledge base."""

from typing import List, Optional

from ..config.logging import LoggerMixin
from ..config.settings import Settings
from ..models.knowledge import (
    DocumentCount,
    DocumentListResponse,
    DocumentMetadata,
    IngestionResult,
    KnowledgeSearchResult,
    SearchRequest,
    UploadRequest,
)
from ..rag.database import KnowledgeBase
from ..rag.database.ingestion import ProgressCallback
from ..rag.routing import CollectionRef
from ..utils.validation import validate_document_content
from .access import TenantAccessChecker
from .exceptions import AccessDeniedError, ValidationError


class KnowledgeService(LoggerMixin):
    """Runs the tenant access check once, then delegates to the knowledge base.

    Collections are addressed by logical name plus tenant, or by the admin
    display name ``"<collection> (<tenant>)"``.
    """

    def __init__(self, settings: Settings, knowledge_base: KnowledgeBase, access: TenantAccessChecker):
        self.settings = settings
        self.knowledge_base = knowledge_base
        self.access = access

    async def _authorize(self, principal_id: Optional[str], tenant_id: str, write: bool = False) -> None:
        if not await self.access.has_access(principal_id, tenant_id, write=write):
            raise AccessDeniedError(principal_id, tenant_id)

    def _require_admin(self, principal_id: Optional[str]) -> None:
        if not self.access.is_admin(principal_id):
            raise AccessDeniedError(principal_id, "*")

    def _resolve(self, collection: str, tenant_id: Optional[str]) -> CollectionRef:
        ref = self.knowledge_base.router.resolve_reference(collection, tenant_id)
        if not ref.tenant_id:
            raise ValidationError("tenant_id is required", "tenant_id")
        return ref

    async def list_collections(self, principal_id: Optional[str], tenant_id: Optional[str] = None) -> List[str]:
        if tenant_id:
            await self._authorize(principal_id, tenant_id)
        return await self.knowledge_base.list_collections(tenant_id, self.access.is_admin(principal_id))

    async def search(self, principal_id: Optional[str], request: SearchRequest) -> List[KnowledgeSearchResult]:
        """Search after checking access to every tenant the scope touches."""
        if request.tenant_id:
            await self._authorize(principal_id, request.tenant_id)
        else:
            self._require_admin(principal_id)

        owners = set()
        for entry in request.collections:
            try:
                ref = self.knowledge_base.router.resolve_reference(entry, request.tenant_id)
            except ValidationError:
                # Unresolvable entries are skipped by the search itself.
                continue
            if ref.tenant_id and ref.tenant_id != request.tenant_id:
                owners.add(ref.tenant_id)
        for owner in sorted(owners):
            await self._authorize(principal_id, owner)

        return await self.knowledge_base.search(
            request.query,
            request.collections,
            request.limit,
            request.tenant_id,
            request.strategy,
        )

    async def upload(
        self,
        principal_id: Optional[str],
        request: UploadRequest,
        on_progress: Optional[ProgressCallback] = None,
    ) -> IngestionResult:
        validate_document_content(request.content)
        ref = self._resolve(request.collection, request.tenant_id)
        await self._authorize(principal_id, ref.tenant_id, write=True)

        metadata = DocumentMetadata(
            file_name=request.file_name,
            collection=ref.collection,
            uploaded_by=principal_id or "anonymous",
            school_id=ref.tenant_id,
            file_type=request.file_type,
            file_size=request.file_size,
        )
        return await self.knowledge_base.ingest(
            request.content,
            metadata,
            ref.physical_name,
            batch_size=request.batch_size,
            on_progress=on_progress,
        )

    async def list_documents(
        self,
        principal_id: Optional[str],
        collection: str,
        tenant_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> DocumentListResponse:
        ref = self._resolve(collection, tenant_id)
        await self._authorize(principal_id, ref.tenant_id)
        return await self.knowledge_base.list_documents(ref.physical_name, ref.tenant_id, limit, offset)

    async def count_documents(
        self,
        principal_id: Optional[str],
        collection: str,
        tenant_id: Optional[str] = None,
    ) -> DocumentCount:
        ref = self._resolve(collection, tenant_id)
        await self._authorize(principal_id, ref.tenant_id)
        count = await self.knowledge_base.count_documents(ref.physical_name, ref.tenant_id)
        return DocumentCount(collection=ref.collection, tenant_id=ref.tenant_id, document_count=count)

    async def delete_document(
        self,
        principal_id: Optional[str],
        collection: str,
        file_name: str,
        tenant_id: Optional[str] = None,
    ) -> bool:
        if not file_name or not file_name.strip():
            raise ValidationError("file_name cannot be empty", "file_name")
        ref = self._resolve(collection, tenant_id)
        await self._authorize(principal_id, ref.tenant_id, write=True)
        return await self.knowledge_base.delete_document(ref.physical_name, file_name, ref.tenant_id)

    async def delete_collection(
        self,
        principal_id: Optional[str],
        collection: str,
        tenant_id: Optional[str] = None,
    ) -> bool:
        ref = self._resolve(collection, tenant_id)
        await self._authorize(principal_id, ref.tenant_id, write=True)
        self.logger.info(
            "Deleting collection",
            principal_id=principal_id,
            tenant_id=ref.tenant_id,
            collection=ref.physical_name,
        )
        return await self.knowledge_base.delete_collection(ref.physical_name, ref.tenant_id)
