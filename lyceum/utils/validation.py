"""Validation of identifiers and request values."""

import re
from typing import Optional

from ..core.exceptions import ValidationError

_IDENTIFIER = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.\-]*$")
_COLLECTION = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")
MAX_NAME_LENGTH = 128


def validate_identifier(value: str, field: str) -> None:
    """Validate a name that is used as one component of a physical collection name."""
    if not value:
        raise ValidationError(f"{field} cannot be empty", field)

    if len(value) > MAX_NAME_LENGTH:
        raise ValidationError(f"{field} too long (max {MAX_NAME_LENGTH} characters)", field)

    if not _IDENTIFIER.match(value):
        raise ValidationError(
            f"{field} may only contain letters, digits, '.' and '-': {value!r}", field
        )


def validate_tenant_id(tenant_id: str) -> None:
    """Validate a tenant id; underscores are reserved as name separators."""
    validate_identifier(tenant_id, "tenant_id")


def validate_collection_name(collection: str) -> None:
    """Validate a logical collection name."""
    if not collection:
        raise ValidationError("Collection name cannot be empty", "collection")

    if len(collection) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"Collection name too long (max {MAX_NAME_LENGTH} characters)", "collection"
        )

    if not _COLLECTION.match(collection):
        raise ValidationError(f"Invalid collection name: {collection!r}", "collection")


def validate_document_content(content: str) -> None:
    """Validate document content."""
    if not isinstance(content, str):
        raise ValidationError("Document content must be a string", "content")

    if not content.strip():
        raise ValidationError("Document content cannot be empty", "content")

    if len(content) > 50 * 1024 * 1024:  # 50MB limit
        raise ValidationError("Document content too large (max 50MB)", "content")


def validate_search_query(query: str) -> None:
    """Validate search query."""
    if not isinstance(query, str):
        raise ValidationError("Search query must be a string", "query")

    if not query.strip():
        raise ValidationError("Search query cannot be empty", "query")

    if len(query) > 2000:
        raise ValidationError("Search query too long (max 2000 characters)", "query")


def validate_limit(limit: Optional[int], maximum: int = 1000) -> None:
    """Validate limit parameter."""
    if limit is None:
        return

    if not isinstance(limit, int) or isinstance(limit, bool):
        raise ValidationError("Limit must be an integer", "limit")

    if limit < 1:
        raise ValidationError("Limit must be positive", "limit")

    if limit > maximum:
        raise ValidationError(f"Limit too large (max {maximum})", "limit")


def validate_offset(offset: int) -> None:
    """Validate pagination offset."""
    if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        raise ValidationError("Offset must be a non-negative integer", "offset")
