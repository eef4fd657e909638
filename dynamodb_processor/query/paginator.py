"""
Pagination Driver

Fetches pages strictly one after another, each starting at the previous
page's continuation key, until DynamoDB reports no more data or the item
cap is reached. Whole pages are kept, so the aggregated count can exceed
the cap by at most one page.
"""

import logging
from typing import List, Optional

from ..core.cancellation import CancellationToken
from ..core.clock import SYSTEM_CLOCK, Clock
from ..core.metrics import MetricsSink
from ..exceptions import InvalidFilterError
from ..models.filters import QueryFilter
from ..models.results import AggregatedResult, PaginationStopReason, Row
from .executor import QueryExecutor

logger = logging.getLogger(__name__)

DEFAULT_PAGE_DELAY_SECONDS = 0.1
DEFAULT_MAX_ITEMS = 10000

PAGES_FETCHED = "PagesFetched"


class PaginationDriver:
    """Accumulates pages from a ``QueryExecutor`` up to an item cap."""

    def __init__(
        self,
        executor: QueryExecutor,
        clock: Optional[Clock] = None,
        page_delay_seconds: float = DEFAULT_PAGE_DELAY_SECONDS,
        default_max_items: int = DEFAULT_MAX_ITEMS,
        metrics: Optional[MetricsSink] = None,
    ):
        """Initialize pagination driver.

        Args:
            executor: Single page executor
            clock: Delay provider for the pause between pages
            page_delay_seconds: Pause before each follow-up page
            default_max_items: Cap used when the caller gives none
            metrics: Receives the number of pages fetched per run
        """
        self.executor = executor
        self.clock = clock or SYSTEM_CLOCK
        self.page_delay_seconds = page_delay_seconds
        self.default_max_items = default_max_items
        self.metrics = metrics or MetricsSink()

    def execute_all(
        self,
        query_filter: QueryFilter,
        max_items: Optional[int] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> AggregatedResult:
        """Fetch pages until exhausted or ``max_items`` rows are accumulated.

        Raises:
            InvalidFilterError: If ``max_items`` is not positive
            QueryCancelledError: If cancelled mid-run; accumulated rows are discarded
        """
        cap = self.default_max_items if max_items is None else max_items
        if cap <= 0:
            raise InvalidFilterError("maxItems must be positive", errors={'maxItems': cap})

        items: List[Row] = []
        cursor: Optional[Row] = None
        pages_fetched = 0

        while True:
            page = self.executor.execute(query_filter, cursor, cancellation_token)
            pages_fetched += 1
            items.extend(page.items)
            cursor = page.last_evaluated_key

            if not page.has_more_results:
                stop_reason = PaginationStopReason.EXHAUSTED
                break
            if len(items) >= cap:
                stop_reason = PaginationStopReason.CAP_REACHED
                break

            # Throttling guard between consecutive pages
            self.clock.sleep(self.page_delay_seconds, cancellation_token)

        logger.debug(
            f"Pagination finished: {len(items)} items over {pages_fetched} pages ({stop_reason.value})"
        )
        try:
            self.metrics.record_count(PAGES_FETCHED, pages_fetched)
        except Exception as e:
            logger.error(f"Metrics sink failed for {PAGES_FETCHED}: {e}")

        return AggregatedResult(
            items=items,
            last_evaluated_key=cursor if stop_reason is PaginationStopReason.CAP_REACHED else None,
            has_more_results=stop_reason is PaginationStopReason.CAP_REACHED,
            total_items=len(items),
            pages_fetched=pages_fetched,
            stop_reason=stop_reason,
        )
