# Base exception class
from .base import QueryProcessorError

# Domain-specific exceptions
from .domain_exceptions import (
    AttributeCodecError,
    CacheError,
    InternalError,
    InvalidCursorError,
    InvalidFilterError,
    QueryCancelledError,
    ResourceNotFoundError,
    ServiceUnavailableError,
    StoreValidationError,
    ThrottledError,
)

__all__ = [
    # Base exception
    "QueryProcessorError",

    # Domain exceptions (alphabetically ordered)
    "AttributeCodecError",
    "CacheError",
    "InternalError",
    "InvalidCursorError",
    "InvalidFilterError",
    "QueryCancelledError",
    "ResourceNotFoundError",
    "ServiceUnavailableError",
    "StoreValidationError",
    "ThrottledError",
]
