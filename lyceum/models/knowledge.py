"""Knowledge base domain models for Lyceum."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator

from .base import LyceumBaseModel, StatsModel


class SearchStrategy(str, Enum):
    """How a query is matched against stored chunks."""

    HYBRID = "hybrid"
    SEMANTIC = "semantic"
    EXACT = "exact"

    @property
    def uses_text_match(self) -> bool:
        """Whether results must also match the query lexically."""
        return self is not SearchStrategy.SEMANTIC


class DocumentMetadata(LyceumBaseModel):
    """Metadata stamped on every chunk of an uploaded document.

    Field aliases are the payload keys stored in the vector store, so
    ``to_payload()`` produces the same shape the filters and indexes expect
    (``metadata.fileName``, ``metadata.schoolId``, ...). Unknown keys are
    kept as free-form metadata.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    file_name: str = Field(alias="fileName", description="Logical document name")
    collection: str = Field(description="Logical collection name")
    uploaded_by: str = Field(alias="uploadedBy", description="Principal that uploaded the file")
    uploaded_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        alias="uploadedAt",
        description="ISO-8601 upload time",
    )
    school_id: Optional[str] = Field(default=None, alias="schoolId", description="Owning tenant")
    file_type: Optional[str] = Field(default=None, alias="fileType", description="MIME type")
    file_size: Optional[str] = Field(default=None, alias="fileSize", description="Size in bytes")

    @field_validator('file_name', 'collection')
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Value cannot be empty')
        return v

    @property
    def is_binary(self) -> bool:
        """Whether the source file was a binary format such as PDF."""
        return is_binary_file_type(self.file_type)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the payload ``metadata`` object."""
        return self.model_dump(by_alias=True, exclude_none=True)


def is_binary_file_type(file_type: Optional[str]) -> bool:
    """Check a MIME type for formats whose text is not worth previewing."""
    if not file_type:
        return False
    lowered = file_type.lower()
    return "pdf" in lowered or "image" in lowered


class KnowledgeSearchResult(LyceumBaseModel):
    """A single ranked passage returned by a knowledge search."""

    text: str = Field(description="Chunk text")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Chunk metadata")
    score: float = Field(description="Native similarity score of the vector store")


class DocumentSummary(LyceumBaseModel):
    """A logical document reconstructed from its stored chunks."""

    file_name: str = Field(description="Logical document name")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Metadata of the first chunk seen")
    chunk_count: int = Field(ge=1, description="Chunks found for this document")
    total_chunks: int = Field(ge=1, description="Chunks recorded at ingestion time")
    uploaded_at: Optional[str] = Field(default=None, description="ISO-8601 upload time")
    uploaded_by: Optional[str] = Field(default=None, description="Uploader")
    file_type: Optional[str] = Field(default=None, description="MIME type")
    file_size: Optional[str] = Field(default=None, description="Size in bytes")
    preview: str = Field(description="Content preview or placeholder")


class DocumentListResponse(LyceumBaseModel):
    """Paginated listing of logical documents."""

    documents: List[DocumentSummary] = Field(default_factory=list)
    next_offset: Optional[int] = Field(default=None, description="Offset of the next page, if any")
    total_documents: int = Field(default=0, ge=0, description="Documents across all pages")


class IngestionResult(LyceumBaseModel):
    """Outcome of a successful ingestion."""

    success: bool = Field(default=True)
    file_name: str
    collection: str = Field(description="Physical collection name")
    ingestion_id: str = Field(description="Identifier stamped on every chunk of this run")
    total_chunks: int = Field(ge=0)
    batches: int = Field(ge=0)


class DocumentCount(StatsModel):
    """Number of logical documents in a collection."""

    collection: str
    tenant_id: Optional[str] = None
    document_count: int = Field(ge=0)


class SearchRequest(LyceumBaseModel):
    """Request body for a knowledge search."""

    query: str = Field(description="Free-text query")
    collections: List[str] = Field(description="Display names of the collections to search")
    limit: Optional[int] = Field(
        default=None, ge=1, le=100, description="Maximum results, SEARCH_DEFAULT_LIMIT when unset"
    )
    tenant_id: Optional[str] = Field(default=None, description="Tenant scope")
    strategy: Optional[SearchStrategy] = Field(
        default=None, description="Retrieval strategy, SEARCH_DEFAULT_STRATEGY when unset"
    )

    @field_validator('query')
    @classmethod
    def query_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Query cannot be empty')
        return v


class UploadRequest(LyceumBaseModel):
    """Request body for uploading extracted document text."""

    content: str = Field(description="Extracted document text")
    file_name: str = Field(description="Original file name")
    collection: str = Field(description="Logical collection name")
    tenant_id: Optional[str] = Field(default=None, description="Owning tenant")
    file_type: Optional[str] = Field(default=None, description="MIME type")
    file_size: Optional[str] = Field(default=None, description="Size in bytes")
    batch_size: Optional[int] = Field(default=None, ge=1, le=256)

    @field_validator('content')
    @classmethod
    def content_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Content cannot be empty')
        return v
