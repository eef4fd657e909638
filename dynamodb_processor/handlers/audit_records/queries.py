"""
Audit Records Read API

This module provides the read operations exposed to the HTTP layer:
- DynamoDB Query operations on one of three GSIs, chosen from the filter
- Opaque base64 continuation tokens for page-by-page reads
- Multi-page retrieval up to an item cap with pacing between pages
- A process-wide result cache in front of DynamoDB

Filters may be passed as ``QueryFilter`` instances or as request mappings
with camelCase or snake_case keys.
"""

import logging
from collections.abc import Mapping
from typing import Optional, Union

from ...config import DynamoDBConfig
from ...core import (
    SYSTEM_CLOCK,
    CancellationToken,
    Clock,
    MetricsSink,
    ResultCache,
    StoreClient,
    create_metrics_sink,
    create_store_client,
    get_shared_cache,
)
from ...exceptions import InvalidFilterError
from ...models import QueryAllResponse, QueryFilter, QueryResponse
from ...query import PaginationDriver, QueryBuilder, QueryExecutor, RetryPolicy
from ...utils import decode_cursor

logger = logging.getLogger(__name__)

AUDIT_RECORDS_TABLE = "audit_records"

FilterInput = Union[QueryFilter, Mapping]


class AuditRecordsReadApi:
    """
    Read-only API for audit record queries.

    Access patterns:
    - subjectId + systemId -> SubjectSystemIndex
    - subjectId            -> SubjectIndex
    - systemId             -> SystemIndex
    Time range and resourceId are applied as residual filters.
    """

    def __init__(
        self,
        config: DynamoDBConfig,
        store: Optional[StoreClient] = None,
        cache: Optional[ResultCache] = None,
        metrics: Optional[MetricsSink] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize read API with configuration.

        Collaborators default to the DynamoDB store client for the audit
        table, the shared process-wide cache, the configured metrics sink and
        the system clock.
        """
        self.config = config
        limits = config.limits

        if config.enable_debug_logging:
            logging.getLogger("dynamodb_processor").setLevel(logging.DEBUG)

        self.table_name = config.get_table_name(AUDIT_RECORDS_TABLE)
        self._owns_store = store is None
        self.store = store or create_store_client(config, AUDIT_RECORDS_TABLE)
        self.cache = cache or get_shared_cache(limits.cache_max_size, limits.cache_ttl_seconds)
        self.metrics = metrics or create_metrics_sink(config)
        self.clock = clock or SYSTEM_CLOCK

        self.builder = QueryBuilder(self.table_name, limits.max_identifier_length)
        self.executor = QueryExecutor(
            builder=self.builder,
            store=self.store,
            cache=self.cache,
            metrics=self.metrics,
            clock=self.clock,
            retry_policy=RetryPolicy.from_limits(limits),
            max_page_size=limits.max_page_size,
            cache_ttl_seconds=limits.cache_ttl_seconds,
        )
        self.paginator = PaginationDriver(
            executor=self.executor,
            clock=self.clock,
            page_delay_seconds=limits.page_delay_ms / 1000.0,
            default_max_items=limits.default_max_items,
            metrics=self.metrics,
        )

    def query(
        self,
        query_filter: FilterInput,
        cancellation_token: Optional[CancellationToken] = None
    ) -> QueryResponse:
        """
        Query one page of audit records.

        DynamoDB Operation: Query on the GSI selected from the filter

        Args:
            query_filter: Filter request (subjectId and/or systemId required)
            cancellation_token: Aborts the call when cancelled

        Returns:
            QueryResponse with decoded items and a continuation token when
            more data exists
        """
        parsed = QueryFilter.parse(query_filter)
        page = self.executor.execute(parsed, cancellation_token=cancellation_token)
        logger.debug(f"query returned {page.total_items} items (has_more={page.has_more_results})")
        return QueryResponse.from_page(page)

    def query_page(
        self,
        query_filter: FilterInput,
        continuation_token: Optional[str] = None,
        page_size: Optional[int] = None,
        cancellation_token: Optional[CancellationToken] = None
    ) -> QueryResponse:
        """
        Query one page resumed from a continuation token.

        Args:
            query_filter: Filter request
            continuation_token: Opaque token from a previous response; None
                starts from the beginning
            page_size: Requested page size (capped at the configured maximum)
            cancellation_token: Aborts the call when cancelled

        Returns:
            QueryResponse for the requested page

        Raises:
            InvalidCursorError: If the token cannot be decoded
            InvalidFilterError: If the filter or page size is invalid
        """
        parsed = QueryFilter.parse(query_filter)

        if page_size is not None and page_size <= 0:
            raise InvalidFilterError("pageSize must be positive", errors={'pageSize': page_size})

        cursor = decode_cursor(continuation_token)
        parsed = parsed.with_page(limit=page_size)

        page = self.executor.execute(parsed, cursor, cancellation_token)
        return QueryResponse.from_page(page)

    def query_all(
        self,
        query_filter: FilterInput,
        max_items: Optional[int] = None,
        cancellation_token: Optional[CancellationToken] = None
    ) -> QueryAllResponse:
        """
        Query every page up to ``max_items`` records.

        Pages are fetched sequentially with a short pause between them. The
        whole last page is kept, so up to one page more than ``max_items``
        can be returned.

        Args:
            query_filter: Filter request
            max_items: Item cap (defaults to the configured cap)
            cancellation_token: Aborts the run when cancelled; partial results are discarded

        Returns:
            QueryAllResponse with all accumulated items
        """
        parsed = QueryFilter.parse(query_filter)
        result = self.paginator.execute_all(parsed, max_items, cancellation_token)
        logger.info(
            f"query_all on {self.table_name} returned {result.total_items} items "
            f"over {result.pages_fetched} pages ({result.stop_reason.value})"
        )
        return QueryAllResponse.from_aggregate(result)

    def close(self) -> None:
        """Release the store client created by this API.

        A store passed in by the caller is left open; its owner closes it.
        """
        if self._owns_store:
            self.store.close()

    def __enter__(self) -> 'AuditRecordsReadApi':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
