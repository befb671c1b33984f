"""Lyceum domain models."""

from .base import LyceumBaseModel, StatsModel
from .knowledge import (
    DocumentCount,
    DocumentListResponse,
    DocumentMetadata,
    DocumentSummary,
    IngestionResult,
    KnowledgeSearchResult,
    SearchRequest,
    SearchStrategy,
    UploadRequest,
    is_binary_file_type,
)

__all__ = [
    # Base models
    "LyceumBaseModel",
    "StatsModel",

    # Knowledge models
    "DocumentCount",
    "DocumentListResponse",
    "DocumentMetadata",
    "DocumentSummary",
    "IngestionResult",
    "KnowledgeSearchResult",
    "SearchRequest",
    "SearchStrategy",
    "UploadRequest",
    "is_binary_file_type",
]
