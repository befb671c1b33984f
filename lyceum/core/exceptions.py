"""Custom exceptions for Lyceum."""

from typing import Any, Dict, Optional


class LyceumError(Exception):
    """Base exception for all Lyceum errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [self.message]
        if self.error_code:
            parts.append(f"(code: {self.error_code})")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConfigurationError(LyceumError):
    """Raised when there's a configuration issue."""

    def __init__(self, message: str, config_key: Optional[str] = None) -> None:
        details = {"config_key": config_key} if config_key else {}
        super().__init__(message, "CONFIGURATION_ERROR", details)


class RAGError(LyceumError):
    """Raised when there's a knowledge base issue."""

    def __init__(self, message: str, collection: Optional[str] = None) -> None:
        details = {"collection": collection} if collection else {}
        super().__init__(message, "RAG_ERROR", details)


class EmbeddingError(RAGError):
    """Raised when there's an embedding generation issue."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.error_code = "EMBEDDING_ERROR"


class VectorStoreError(RAGError):
    """Raised when a vector store call fails."""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message, collection)
        self.error_code = "VECTOR_STORE_ERROR"
        if operation:
            self.details["operation"] = operation


class IngestionError(RAGError):
    """Raised when a document could not be ingested."""

    def __init__(
        self,
        message: str,
        file_name: Optional[str] = None,
        collection: Optional[str] = None,
        compensated: bool = False,
    ) -> None:
        super().__init__(message, collection)
        self.error_code = "INGESTION_ERROR"
        self.details["compensated"] = compensated
        if file_name:
            self.details["file_name"] = file_name


class DeletionError(RAGError):
    """Raised when the chunks of a document could not be removed."""

    def __init__(
        self,
        message: str,
        file_name: Optional[str] = None,
        collection: Optional[str] = None,
    ) -> None:
        super().__init__(message, collection)
        self.error_code = "DELETION_ERROR"
        if file_name:
            self.details["file_name"] = file_name


class AccessDeniedError(LyceumError):
    """Raised when a principal may not act on a tenant."""

    def __init__(self, principal_id: Optional[str], tenant_id: str) -> None:
        super().__init__(
            f"Access denied to tenant: {tenant_id}",
            "ACCESS_DENIED",
            {"principal_id": principal_id, "tenant_id": tenant_id},
        )


class ValidationError(LyceumError):
    """Raised when data validation fails."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)
