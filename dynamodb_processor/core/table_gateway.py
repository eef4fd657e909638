"""
Thin DynamoDB Store Client

This module is the only place that talks to DynamoDB. It:

1. Creates the low-level boto3 client lazily from ``DynamoDBConfig``
2. Runs a ``QueryDescriptor`` as a single ``Query`` call and returns the raw
   response (items and ``LastEvaluatedKey`` in wire form)
3. Maps botocore ``ClientError`` codes onto the processor's error kinds

The low-level client is used instead of the Table resource because the
query core works with tagged attribute values end to end; normalizing the
raw page is the executor's job.

botocore's own retries are disabled by default (``config.retries = 0``):
throttling is retried once, by the executor's retry policy.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..config import DynamoDBConfig
from ..exceptions import (
    InternalError,
    QueryCancelledError,
    ResourceNotFoundError,
    StoreValidationError,
    ThrottledError,
)
from ..models.results import QueryDescriptor
from .cancellation import CancellationToken

logger = logging.getLogger(__name__)

THROTTLING_ERROR_CODES = frozenset([
    'ProvisionedThroughputExceededException',
    'RequestLimitExceeded',
    'ThrottlingException',
    'TooManyRequestsException',
    'RequestThrottledException',
    'SlowDown',
])


def map_dynamodb_error(error: ClientError, operation: str, table_name: str, index_name: Optional[str] = None) -> Exception:
    """Map a DynamoDB ClientError to the processor's error kinds.

    Args:
        error: The boto3 ClientError
        operation: The operation that failed (e.g., "Query")
        table_name: The DynamoDB table name
        index_name: The index being queried, if any

    Returns:
        ThrottledError, ResourceNotFoundError, StoreValidationError or InternalError
    """
    error_code = error.response.get('Error', {}).get('Code', 'Unknown')
    error_message = error.response.get('Error', {}).get('Message', str(error))

    context = f"{operation} on {table_name}"
    if index_name:
        context += f" (index: {index_name})"

    full_message = f"{context}: {error_message}"

    if error_code in THROTTLING_ERROR_CODES:
        return ThrottledError(f"Throttling - {full_message}", original_error=error)

    elif error_code in ('ResourceNotFoundException', 'TableNotFoundException', 'IndexNotFoundException'):
        resource_type = 'index' if error_code == 'IndexNotFoundException' else 'table'
        resource_name = index_name if resource_type == 'index' else table_name
        return ResourceNotFoundError(f"Resource not found - {full_message}", resource_type, resource_name, original_error=error)

    elif error_code == 'ValidationException':
        return StoreValidationError(f"Validation failed - {full_message}", original_error=error)

    logger.warning(f"Unknown DynamoDB error code '{error_code}' mapped to InternalError")
    return InternalError(f"DynamoDB operation failed - {full_message}", original_error=error, context={'error_code': error_code})


class StoreClient(ABC):
    """Backend query interface consumed by the query executor."""

    @abstractmethod
    def query(self, descriptor: QueryDescriptor, cancellation_token: Optional[CancellationToken] = None) -> Dict[str, Any]:
        """Run one query and return the raw page.

        Returns:
            Mapping with ``Items`` (wire-form rows) and, when more data
            exists, ``LastEvaluatedKey``

        Raises:
            ThrottledError, ResourceNotFoundError, StoreValidationError,
            InternalError, QueryCancelledError
        """
        pass

    def close(self) -> None:
        """Release any resources held by the client."""
        pass


class DynamoDBStoreClient(StoreClient):
    """boto3-backed store client for one table.

    Calls made with a cancellation token run on a small worker pool so the
    caller can stop waiting as soon as the token fires; the abandoned
    request finishes in the background and its result is discarded.
    """

    def __init__(self, config: DynamoDBConfig, table_name: str, cancellation_poll_seconds: float = 0.05):
        """Initialize store client.

        Args:
            config: DynamoDB configuration
            table_name: Fully qualified table name
            cancellation_poll_seconds: How often an in-flight call checks the token
        """
        self.config = config
        self.table_name = table_name
        self.cancellation_poll_seconds = cancellation_poll_seconds
        self._client = None
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def client(self):
        """Lazy initialization of the low-level DynamoDB client."""
        if self._client is None:
            try:
                session = boto3.Session(
                    aws_access_key_id=self.config.aws_access_key_id,
                    aws_secret_access_key=self.config.aws_secret_access_key,
                    region_name=self.config.region_name
                )

                client_kwargs = {
                    'region_name': self.config.region_name
                }

                if self.config.endpoint_url:
                    client_kwargs['endpoint_url'] = self.config.endpoint_url

                client_kwargs['config'] = Config(
                    retries={'max_attempts': self.config.retries, 'mode': 'standard'},
                    max_pool_connections=self.config.max_pool_connections,
                    read_timeout=self.config.timeout_seconds,
                    connect_timeout=self.config.timeout_seconds
                )

                self._client = session.client('dynamodb', **client_kwargs)
            except Exception as e:
                logger.error(f"Failed to create DynamoDB client: {e}")
                raise InternalError(f"Failed to connect to DynamoDB: {e}", e) from e
        return self._client

    def query(self, descriptor: QueryDescriptor, cancellation_token: Optional[CancellationToken] = None) -> Dict[str, Any]:
        query_kwargs = descriptor.to_query_kwargs()

        if cancellation_token is None:
            return self._run_query(query_kwargs, descriptor.index_name)

        cancellation_token.raise_if_cancelled("Query")
        future = self._get_executor().submit(self._run_query, query_kwargs, descriptor.index_name)
        while not future.done():
            if cancellation_token.wait(self.cancellation_poll_seconds):
                future.cancel()
                logger.info(f"Query on {self.table_name} abandoned after cancellation")
                raise QueryCancelledError(
                    f"Query on {self.table_name} cancelled by caller",
                    context={'table_name': self.table_name, 'index_name': descriptor.index_name}
                )
        return future.result()

    def _run_query(self, query_kwargs: Dict[str, Any], index_name: Optional[str]) -> Dict[str, Any]:
        try:
            return self.client.query(**query_kwargs)
        except ClientError as e:
            raise map_dynamodb_error(e, "Query", self.table_name, index_name) from e

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_pool_connections,
                thread_name_prefix="dynamodb-query"
            )
        return self._executor

    def close(self) -> None:
        """Release the worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None


def create_store_client(config: DynamoDBConfig, table_name: str) -> DynamoDBStoreClient:
    """
    Factory function to create a DynamoDBStoreClient instance.

    Args:
        config: DynamoDB configuration
        table_name: Base table name (prefixed via config.get_table_name())

    Returns:
        Configured DynamoDBStoreClient instance
    """
    full_table_name = config.get_table_name(table_name)
    return DynamoDBStoreClient(config, full_table_name)
