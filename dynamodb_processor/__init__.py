"""
DynamoDB Query Processor

A read-side query library for the audit records DynamoDB table, built on
boto3 and Pydantic. It selects a GSI from a partially populated filter,
builds key and filter expressions, pages through results with opaque
continuation tokens, retries throttled calls with exponential backoff and
caches pages in process.
"""

from .config import DynamoDBConfig, QueryLimits
from .exceptions import (
    CacheError,
    InternalError,
    InvalidCursorError,
    InvalidFilterError,
    QueryCancelledError,
    QueryProcessorError,
    ResourceNotFoundError,
    ServiceUnavailableError,
    StoreValidationError,
    ThrottledError,
)
from .models import (
    # Attribute codec
    AttributeType,
    AttributeValue,
    from_wire,
    to_wire,
    # Filter and results
    AggregatedResult,
    PageResult,
    PaginationStopReason,
    QueryDescriptor,
    QueryFilter,
    # Views
    QueryAllResponse,
    QueryResponse,
)
from .core import (
    CancellationToken,
    Clock,
    CloudWatchMetricsSink,
    DynamoDBStoreClient,
    InMemoryResultCache,
    MetricsSink,
    ResultCache,
    StoreClient,
)
from .query import PaginationDriver, QueryBuilder, QueryExecutor, RetryPolicy
from .handlers.audit_records import AuditRecordsReadApi

__version__ = "1.0.0"
__all__ = [
    # Configuration
    "DynamoDBConfig",
    "QueryLimits",

    # Exceptions
    "CacheError",
    "InternalError",
    "InvalidCursorError",
    "InvalidFilterError",
    "QueryCancelledError",
    "QueryProcessorError",
    "ResourceNotFoundError",
    "ServiceUnavailableError",
    "StoreValidationError",
    "ThrottledError",

    # Attribute codec
    "AttributeType",
    "AttributeValue",
    "from_wire",
    "to_wire",

    # Filter, descriptor and results
    "AggregatedResult",
    "PageResult",
    "PaginationStopReason",
    "QueryDescriptor",
    "QueryFilter",

    # Views
    "QueryAllResponse",
    "QueryResponse",

    # Core collaborators
    "CancellationToken",
    "Clock",
    "CloudWatchMetricsSink",
    "DynamoDBStoreClient",
    "InMemoryResultCache",
    "MetricsSink",
    "ResultCache",
    "StoreClient",

    # Query engine
    "PaginationDriver",
    "QueryBuilder",
    "QueryExecutor",
    "RetryPolicy",

    # Read API
    "AuditRecordsReadApi",
]
