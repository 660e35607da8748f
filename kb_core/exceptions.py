"""
Exception Classes for Knowledge Core

Provides the error taxonomy shared by the embedding service, the knowledge
store and the ingestion workflow. Provider and storage specific errors are
always wrapped in one of these before reaching callers.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced by the core"""
    INVALID_INPUT = "invalid_input"
    EMBEDDING_UNAVAILABLE = "embedding_unavailable"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    STORAGE_ERROR = "storage_error"
    NO_OP = "no_op"


class KnowledgeError(Exception):
    """
    Base exception for all knowledge base errors.

    Attributes:
        message: Human-readable error message
        kind: Failure kind from the closed ErrorKind set
        error_code: Machine-readable error code for programmatic handling
        details: Additional error details
    """
    kind = ErrorKind.STORAGE_ERROR
    error_code = 'KNOWLEDGE_ERROR'

    def __init__(
        self,
        message: str = 'A knowledge base error occurred',
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        result = {
            'success': False,
            'error': self.message,
            'error_code': self.error_code,
            'kind': self.kind.value,
        }
        if self.details:
            result['details'] = self.details
        return result


class InvalidInputError(KnowledgeError):
    """Malformed or missing caller data."""
    kind = ErrorKind.INVALID_INPUT
    error_code = 'INVALID_INPUT'

    def __init__(self, message: str = 'Invalid input', field: Optional[str] = None):
        details = {'field': field} if field else None
        super().__init__(message, details=details)


class EmbeddingUnavailableError(KnowledgeError):
    """Embedding provider failed or returned an unusable vector."""
    kind = ErrorKind.EMBEDDING_UNAVAILABLE
    error_code = 'EMBEDDING_UNAVAILABLE'

    def __init__(
        self,
        message: str = 'Embedding unavailable',
        provider: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        details = {}
        if provider:
            details['provider'] = provider
        if status_code is not None:
            details['status_code'] = status_code
        super().__init__(message, details=details if details else None)


class NotFoundError(KnowledgeError):
    """Referenced entry does not exist."""
    kind = ErrorKind.NOT_FOUND
    error_code = 'NOT_FOUND'

    def __init__(
        self,
        message: str = 'Resource not found',
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None
    ):
        details = {}
        if resource_type:
            details['resource_type'] = resource_type
        if resource_id is not None:
            details['resource_id'] = resource_id
        super().__init__(message, details=details if details else None)


class ValidationError(KnowledgeError):
    """Data violates schema, enumeration or length constraints."""
    kind = ErrorKind.VALIDATION_ERROR
    error_code = 'VALIDATION_ERROR'

    def __init__(
        self,
        message: str = 'Validation failed',
        field_errors: Optional[Dict[str, list]] = None
    ):
        details = {}
        if field_errors:
            details['fields'] = field_errors
        super().__init__(message, details=details if details else None)


class StorageError(KnowledgeError):
    """Persistence layer failure."""
    kind = ErrorKind.STORAGE_ERROR
    error_code = 'STORAGE_ERROR'

    def __init__(self, message: str = 'Storage operation failed', operation: Optional[str] = None):
        details = {'operation': operation} if operation else None
        super().__init__(message, details=details)


class NoOpError(KnowledgeError):
    """Update request carried nothing to write."""
    kind = ErrorKind.NO_OP
    error_code = 'NO_OP'

    def __init__(self, message: str = 'No valid fields supplied for update'):
        super().__init__(message)
