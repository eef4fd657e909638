"""
Core infrastructure components for the query processor.

This module contains the collaborators the query core is wired from:
- DynamoDBStoreClient: Thin wrapper over the boto3 DynamoDB Query call
- InMemoryResultCache: Bounded, time-expiring page cache
- MetricsSink / CloudWatchMetricsSink: Fire-and-forget observability
- Clock and CancellationToken: Time, delays and caller cancellation
"""

from .cache import (
    InMemoryResultCache,
    ResultCache,
    build_cache_key,
    get_shared_cache,
    reset_shared_cache,
)
from .cancellation import CancellationToken
from .clock import SYSTEM_CLOCK, Clock
from .metrics import CloudWatchMetricsSink, MetricsSink, create_metrics_sink
from .table_gateway import (
    DynamoDBStoreClient,
    StoreClient,
    create_store_client,
    map_dynamodb_error,
)

__all__ = [
    "CancellationToken",
    "Clock",
    "CloudWatchMetricsSink",
    "DynamoDBStoreClient",
    "InMemoryResultCache",
    "MetricsSink",
    "ResultCache",
    "StoreClient",
    "SYSTEM_CLOCK",
    "build_cache_key",
    "create_metrics_sink",
    "create_store_client",
    "get_shared_cache",
    "map_dynamodb_error",
    "reset_shared_cache",
]
