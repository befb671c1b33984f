"""Utility functions and helpers."""

from .async_utils import retry_with_backoff
from .validation import (
    validate_collection_name,
    validate_document_content,
    validate_identifier,
    validate_limit,
    validate_offset,
    validate_search_query,
    validate_tenant_id,
)

__all__ = [
    "retry_with_backoff",
    "validate_collection_name",
    "validate_document_content",
    "validate_identifier",
    "validate_limit",
    "validate_offset",
    "validate_search_query",
    "validate_tenant_id",
]
