"""
Domain-Specific Exceptions for the Query Processor

Every failure the query core can produce has its own kind so the transport
layer can map it to a distinct status without inspecting messages.

Organized by category:
1. Request Validation Errors
2. Resource Not Found Errors
3. Throttling and Availability Errors
4. Local Infrastructure Errors
"""

from typing import Any, Dict, Optional

from .base import QueryProcessorError


# =============================================================================
# Request Validation Errors
# =============================================================================

class InvalidFilterError(QueryProcessorError):
    """Raised when a filter request has a bad combination of fields.

    Used for:
    - Neither subject id nor system id supplied
    - Only one bound of the time range supplied, or end before start
    - Field values failing model validation (length, type)
    """

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None, original_error: Optional[Exception] = None):
        """Initialize invalid filter error.

        Args:
            message: Human-readable error message
            errors: Dictionary of field-level validation errors
            original_error: The original exception that caused this error
        """
        self.errors = errors or {}
        context = {}
        if self.errors:
            context['validation_errors'] = self.errors
        super().__init__(message, original_error, context)


class InvalidCursorError(InvalidFilterError):
    """Raised when a continuation token cannot be decoded."""

    error_code = "INVALID_CURSOR"


class StoreValidationError(QueryProcessorError):
    """Raised when DynamoDB rejects a query with a ValidationException."""

    error_code = "VALIDATION_ERROR"
    status_code = 400


class AttributeCodecError(QueryProcessorError):
    """Raised when a value falls outside the supported attribute kinds."""

    error_code = "ENCODING_ERROR"


# =============================================================================
# Resource Not Found Errors
# =============================================================================

class ResourceNotFoundError(QueryProcessorError):
    """Raised when the table or index being queried does not exist."""

    error_code = "RESOURCE_NOT_FOUND"
    status_code = 404

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_name: Optional[str] = None, original_error: Optional[Exception] = None):
        """Initialize resource not found error.

        Args:
            message: Human-readable error message
            resource_type: Type of resource not found (e.g., 'table', 'index')
            resource_name: Name of the resource not found
            original_error: The original exception that caused this error
        """
        self.resource_type = resource_type
        self.resource_name = resource_name
        context = {}
        if resource_type:
            context['resource_type'] = resource_type
        if resource_name:
            context['resource_name'] = resource_name
        super().__init__(message, original_error, context)


# =============================================================================
# Throttling and Availability Errors
# =============================================================================

class ThrottledError(QueryProcessorError):
    """Raised when DynamoDB reports that capacity or rate limits were exceeded.

    Used for:
    - ProvisionedThroughputExceededException
    - RequestLimitExceeded
    - ThrottlingException
    """

    error_code = "THROTTLED"
    status_code = 429

    def __init__(self, message: str, retry_after_seconds: Optional[float] = None, original_error: Optional[Exception] = None):
        """Initialize throttled error.

        Args:
            message: Human-readable error message
            retry_after_seconds: Suggested retry delay in seconds
            original_error: The original exception that caused this error
        """
        self.retry_after_seconds = retry_after_seconds
        context = {}
        if retry_after_seconds:
            context['retry_after_seconds'] = retry_after_seconds
        super().__init__(message, original_error, context)


class ServiceUnavailableError(QueryProcessorError):
    """Raised when throttling persisted through every retry attempt."""

    error_code = "SERVICE_UNAVAILABLE"
    status_code = 503

    def __init__(self, message: str, attempts: int, original_error: Optional[Exception] = None):
        self.attempts = attempts
        super().__init__(message, original_error, {'attempts': attempts})


class QueryCancelledError(QueryProcessorError):
    """Raised when the caller cancelled an in-flight query, retry or page delay."""

    error_code = "CANCELLED"
    status_code = 499


# =============================================================================
# Local Infrastructure Errors
# =============================================================================

class CacheError(QueryProcessorError):
    """Raised by result cache implementations.

    Never surfaced to callers: the query executor logs it and treats the
    lookup as a miss.
    """

    error_code = "CACHE_ERROR"


class InternalError(QueryProcessorError):
    """Raised for any unexpected failure. Never retried."""

    error_code = "INTERNAL_ERROR"
    status_code = 500
