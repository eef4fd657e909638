"""
Query Executor

Runs one page of a query:

1. Look the page up in the result cache; a live entry is returned as is
2. On a miss, build the descriptor, cap the page size and attach the cursor
3. Call the store client under the throttling retry policy
4. Normalize the raw response into a ``PageResult`` and cache it

Error kinds surfaced to callers:
- ``InvalidFilterError``: filter rejected before any backend call
- ``ResourceNotFoundError`` / ``StoreValidationError``: backend 404/400, not retried
- ``ServiceUnavailableError``: throttling persisted through every retry
- ``QueryCancelledError``: the caller's token fired
- ``InternalError``: anything else

Cache and metrics failures are logged and never change the outcome.
"""

import logging
from typing import Any, Dict, Optional

from ..core.cache import ResultCache, build_cache_key
from ..core.cancellation import CancellationToken
from ..core.clock import SYSTEM_CLOCK, Clock
from ..core.metrics import MetricsSink
from ..core.table_gateway import StoreClient
from ..exceptions import (
    CacheError,
    InternalError,
    InvalidFilterError,
    QueryCancelledError,
    ResourceNotFoundError,
    ServiceUnavailableError,
    StoreValidationError,
    ThrottledError,
)
from ..models.attribute_value import item_from_dynamodb
from ..models.filters import QueryFilter
from ..models.results import PageResult, QueryDescriptor, Row
from .builder import QueryBuilder
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGE_SIZE = 1000
DEFAULT_CACHE_TTL_SECONDS = 300.0

# Metric names
CACHE_HIT = "CacheHit"
CACHE_MISS = "CacheMiss"
QUERY_THROTTLED_RETRY = "QueryThrottledRetry"
QUERY_SUCCESS = "QuerySuccess"
QUERY_ERROR = "QueryError"
QUERY_DURATION = "QueryDuration"
RECORDS_RETRIEVED = "RecordsRetrieved"


class QueryExecutor:
    """Cache-aware, throttling-tolerant single page execution."""

    def __init__(
        self,
        builder: QueryBuilder,
        store: StoreClient,
        cache: ResultCache,
        metrics: Optional[MetricsSink] = None,
        clock: Optional[Clock] = None,
        retry_policy: Optional[RetryPolicy] = None,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
    ):
        self.builder = builder
        self.store = store
        self.cache = cache
        self.metrics = metrics or MetricsSink()
        self.clock = clock or SYSTEM_CLOCK
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_page_size = max_page_size
        self.cache_ttl_seconds = cache_ttl_seconds

    def execute(
        self,
        query_filter: QueryFilter,
        cursor: Optional[Row] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> PageResult:
        """Fetch one page for ``query_filter`` starting at ``cursor``.

        Args:
            query_filter: Validated-on-build filter request
            cursor: Continuation key from a previous page; overrides the
                filter's own ``exclusive_start_key`` when given
            cancellation_token: Aborts the backend call or backoff when cancelled

        Returns:
            PageResult with ``last_evaluated_key`` set iff more data exists
        """
        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled("Query")

        index_name = QueryBuilder.select_index(query_filter)
        dimensions = {'IndexName': index_name}
        cache_key = build_cache_key(query_filter, cursor)

        cached = self._cache_get(cache_key)
        if cached is not None:
            self._emit_count(CACHE_HIT, 1, dimensions)
            return cached

        self._emit_count(CACHE_MISS, 1, dimensions)
        started = self.clock.now()
        try:
            descriptor = self._prepare(query_filter, cursor)
            raw = self._call_store(descriptor, dimensions, cancellation_token)
            page = self._normalize(raw)
        except QueryCancelledError:
            logger.info(f"Query on {self.builder.table_name} cancelled")
            raise
        except ThrottledError as e:
            self._emit_count(QUERY_ERROR, 1, {**dimensions, 'ErrorType': 'ServiceUnavailable'})
            logger.error(f"Query on {self.builder.table_name} still throttled after {self.retry_policy.max_attempts} attempts")
            raise ServiceUnavailableError(
                f"DynamoDB throttled the query after {self.retry_policy.max_attempts} attempts",
                attempts=self.retry_policy.max_attempts,
                original_error=e
            ) from e
        except (InvalidFilterError, ResourceNotFoundError, StoreValidationError, InternalError) as e:
            self._emit_count(QUERY_ERROR, 1, {**dimensions, 'ErrorType': type(e).__name__})
            logger.error(f"Query on {self.builder.table_name} failed: {e}")
            raise
        except Exception as e:
            self._emit_count(QUERY_ERROR, 1, {**dimensions, 'ErrorType': 'InternalError'})
            logger.error(f"Unexpected error querying {self.builder.table_name}: {e}")
            raise InternalError(f"Query on {self.builder.table_name} failed: {e}", e) from e

        duration_ms = (self.clock.now() - started) * 1000.0
        self._emit_count(QUERY_SUCCESS, 1, dimensions)
        self._emit_latency(QUERY_DURATION, duration_ms, dimensions)
        self._emit_count(RECORDS_RETRIEVED, page.total_items, dimensions)

        self._cache_set(cache_key, page)
        return page

    def _prepare(self, query_filter: QueryFilter, cursor: Optional[Row]) -> QueryDescriptor:
        descriptor = self.builder.build(query_filter)

        requested = query_filter.limit or self.max_page_size
        update: Dict[str, Any] = {'limit': min(requested, self.max_page_size)}
        if cursor:
            update['exclusive_start_key'] = cursor
        return descriptor.model_copy(update=update)

    def _call_store(
        self,
        descriptor: QueryDescriptor,
        dimensions: Dict[str, str],
        cancellation_token: Optional[CancellationToken],
    ) -> Dict[str, Any]:
        def on_retry(attempt: int, error: BaseException, delay: float) -> None:
            logger.warning(
                f"Query on {descriptor.table_name} throttled (attempt {attempt}/{self.retry_policy.max_attempts}), "
                f"retrying in {delay:.3f}s: {error}"
            )
            self._emit_count(QUERY_THROTTLED_RETRY, 1, dimensions)

        return self.retry_policy.call(
            lambda: self.store.query(descriptor, cancellation_token),
            sleep=lambda seconds: self.clock.sleep(seconds, cancellation_token),
            on_retry=on_retry,
        )

    @staticmethod
    def _normalize(raw: Dict[str, Any]) -> PageResult:
        items = [item_from_dynamodb(item) for item in raw.get('Items', [])]
        last_evaluated_key = item_from_dynamodb(raw.get('LastEvaluatedKey'))
        return PageResult(
            items=items,
            last_evaluated_key=last_evaluated_key or None,
            has_more_results=bool(last_evaluated_key),
            total_items=len(items),
        )

    def _cache_get(self, key: str) -> Optional[PageResult]:
        try:
            return self.cache.get(key)
        except CacheError as e:
            logger.error(f"Cache read failed, treating as miss: {e}")
            return None

    def _cache_set(self, key: str, page: PageResult) -> None:
        try:
            self.cache.set(key, page, self.cache_ttl_seconds)
        except CacheError as e:
            logger.error(f"Cache write failed, result not cached: {e}")

    def _emit_count(self, name: str, value: float, dimensions: Dict[str, str]) -> None:
        try:
            self.metrics.record_count(name, value, dimensions)
        except Exception as e:
            logger.error(f"Metrics sink failed for {name}: {e}")

    def _emit_latency(self, name: str, duration_ms: float, dimensions: Dict[str, str]) -> None:
        try:
            self.metrics.record_latency(name, duration_ms, dimensions)
        except Exception as e:
            logger.error(f"Metrics sink failed for {name}: {e}")
