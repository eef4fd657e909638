"""
Tests for QueryExecutor (query/executor.py)

Cache behavior, throttling retry, error kinds, metrics and cancellation,
all against a scripted store client and a fake clock.
"""

from unittest.mock import Mock

import pytest

from dynamodb_processor.core import CancellationToken, InMemoryResultCache, MetricsSink
from dynamodb_processor.exceptions import (
    InternalError,
    InvalidFilterError,
    QueryCancelledError,
    ResourceNotFoundError,
    ServiceUnavailableError,
    StoreValidationError,
    ThrottledError,
)
from dynamodb_processor.models import AttributeValue, QueryFilter
from dynamodb_processor.query import QueryBuilder, QueryExecutor, RetryPolicy
from tests.helpers import FailingCache, ScriptedStoreClient, make_page


@pytest.fixture
def make_executor(fake_clock, result_cache, metrics_sink):
    def _make(store, cache=None, metrics=None, max_page_size=1000, retry_policy=None):
        return QueryExecutor(
            builder=QueryBuilder("test_audit_records"),
            store=store,
            cache=cache or result_cache,
            metrics=metrics or metrics_sink,
            clock=fake_clock,
            retry_policy=retry_policy or RetryPolicy(),
            max_page_size=max_page_size,
            cache_ttl_seconds=300.0,
        )
    return _make


@pytest.fixture
def user_filter():
    return QueryFilter(subject_id="user123")


class TestSinglePage:
    """Normalizing one backend page."""

    def test_page_without_continuation_key(self, make_executor, user_filter):
        store = ScriptedStoreClient([make_page(2)])

        page = make_executor(store).execute(user_filter)

        assert page.total_items == 2
        assert page.has_more_results is False
        assert page.last_evaluated_key is None
        assert page.continuation_token is None
        assert page.items[0]['recordId'] == AttributeValue.string("rec-0")

    def test_page_with_continuation_key(self, make_executor, user_filter):
        store = ScriptedStoreClient([make_page(2, last_key="rec-1")])

        page = make_executor(store).execute(user_filter)

        assert page.has_more_results is True
        assert page.last_evaluated_key['recordId'] == AttributeValue.string("rec-1")
        assert page.continuation_token

    def test_cursor_becomes_exclusive_start_key(self, make_executor, user_filter):
        store = ScriptedStoreClient([make_page(1)])
        cursor = {'recordId': AttributeValue.string("rec-9"), 'subjectId': AttributeValue.string("user123")}

        make_executor(store).execute(user_filter, cursor)

        assert store.calls[0].exclusive_start_key == cursor

    @pytest.mark.parametrize("requested,expected", [
        (None, 1000),
        (50, 50),
        (5000, 1000),
    ])
    def test_page_size_is_capped(self, make_executor, requested, expected):
        store = ScriptedStoreClient([make_page(0)])

        make_executor(store).execute(QueryFilter(subject_id="user123", limit=requested))

        assert store.calls[0].limit == expected


class TestCaching:
    """Idempotence through the result cache."""

    def test_second_identical_call_is_served_from_cache(self, make_executor, user_filter, metrics_sink):
        store = ScriptedStoreClient([make_page(2)])
        executor = make_executor(store)

        first = executor.execute(user_filter)
        second = executor.execute(user_filter)

        assert store.call_count == 1
        assert second == first
        assert metrics_sink.count("CacheMiss") == 1
        assert metrics_sink.count("CacheHit") == 1

    def test_different_cursor_is_a_different_entry(self, make_executor, user_filter):
        store = ScriptedStoreClient([make_page(2, last_key="rec-1"), make_page(1)])
        executor = make_executor(store)

        first = executor.execute(user_filter)
        executor.execute(user_filter, first.last_evaluated_key)

        assert store.call_count == 2

    def test_different_limit_is_a_different_entry(self, make_executor):
        store = ScriptedStoreClient([make_page(2)])
        executor = make_executor(store)

        executor.execute(QueryFilter(subject_id="user123", limit=10))
        executor.execute(QueryFilter(subject_id="user123", limit=20))

        assert store.call_count == 2

    def test_expired_entry_triggers_backend_call(self, make_executor, user_filter, fake_clock):
        store = ScriptedStoreClient([make_page(2)])
        executor = make_executor(store)

        executor.execute(user_filter)
        fake_clock.advance(301)
        executor.execute(user_filter)

        assert store.call_count == 2

    def test_cache_errors_are_treated_as_miss(self, make_executor, user_filter):
        store = ScriptedStoreClient([make_page(2)])
        executor = make_executor(store, cache=FailingCache())

        assert executor.execute(user_filter).total_items == 2
        assert executor.execute(user_filter).total_items == 2
        assert store.call_count == 2


class TestThrottlingRetry:
    """Retry law and exhaustion."""

    def test_two_throttles_then_success(self, make_executor, user_filter, fake_clock, metrics_sink):
        store = ScriptedStoreClient([
            ThrottledError("slow down"),
            ThrottledError("slow down"),
            make_page(2),
        ])

        page = make_executor(store).execute(user_filter)

        assert page.total_items == 2
        assert store.call_count == 3
        assert fake_clock.sleeps == pytest.approx([0.1, 0.2])
        assert fake_clock.sleeps[0] < fake_clock.sleeps[1]
        assert metrics_sink.count("QueryThrottledRetry") == 2
        assert metrics_sink.count("QuerySuccess") == 1

    def test_exhausted_retries_become_service_unavailable(self, make_executor, user_filter, fake_clock, metrics_sink):
        store = ScriptedStoreClient([ThrottledError("slow down")])

        with pytest.raises(ServiceUnavailableError) as exc_info:
            make_executor(store).execute(user_filter)

        assert store.call_count == 4
        assert exc_info.value.attempts == 4
        assert isinstance(exc_info.value.original_error, ThrottledError)
        assert fake_clock.sleeps == pytest.approx([0.1, 0.2, 0.4])
        assert metrics_sink.count("QueryError") == 1

    def test_failed_query_is_not_cached(self, make_executor, user_filter):
        store = ScriptedStoreClient([ThrottledError("slow down")] * 4 + [make_page(1)])
        executor = make_executor(store)

        with pytest.raises(ServiceUnavailableError):
            executor.execute(user_filter)

        assert executor.execute(user_filter).total_items == 1


class TestErrorKinds:
    """Non-throttling failures propagate without retry."""

    @pytest.mark.parametrize("error", [
        ResourceNotFoundError("no table", "table", "test_audit_records"),
        StoreValidationError("bad expression"),
        InternalError("boom"),
    ])
    def test_store_errors_propagate_unchanged(self, make_executor, user_filter, fake_clock, error):
        store = ScriptedStoreClient([error])

        with pytest.raises(type(error)) as exc_info:
            make_executor(store).execute(user_filter)

        assert exc_info.value is error
        assert store.call_count == 1
        assert fake_clock.sleeps == []

    def test_unexpected_errors_become_internal(self, make_executor, user_filter):
        store = ScriptedStoreClient([RuntimeError("socket closed")])

        with pytest.raises(InternalError) as exc_info:
            make_executor(store).execute(user_filter)

        assert isinstance(exc_info.value.original_error, RuntimeError)

    def test_malformed_page_becomes_internal(self, make_executor, user_filter):
        store = ScriptedStoreClient([{'Items': [{'recordId': {'X': 'bad'}}]}])

        with pytest.raises(InternalError):
            make_executor(store).execute(user_filter)

    def test_invalid_filter_never_reaches_backend(self, make_executor):
        store = ScriptedStoreClient([make_page(1)])

        with pytest.raises(InvalidFilterError):
            make_executor(store).execute(QueryFilter(resource_id="r-1"))

        assert store.call_count == 0


class TestMetrics:
    """Metrics are emitted but can never fail a query."""

    def test_success_metrics(self, make_executor, user_filter, metrics_sink):
        make_executor(ScriptedStoreClient([make_page(3)])).execute(user_filter)

        assert metrics_sink.names() == ["CacheMiss", "QuerySuccess", "QueryDuration", "RecordsRetrieved"]
        records = {record[1]: record for record in metrics_sink.records}
        assert records["RecordsRetrieved"][2] == 3
        assert records["QueryDuration"][0] == 'latency'
        assert records["CacheMiss"][3] == {'IndexName': 'SubjectIndex'}

    def test_failing_sink_is_ignored(self, make_executor, user_filter):
        sink = Mock(spec=MetricsSink)
        sink.record_count.side_effect = RuntimeError("metrics down")
        sink.record_latency.side_effect = RuntimeError("metrics down")

        page = make_executor(ScriptedStoreClient([make_page(2)]), metrics=sink).execute(user_filter)

        assert page.total_items == 2
        assert sink.record_count.called


class TestCancellation:
    """Cancellation of the call and of the backoff."""

    def test_cancelled_before_start(self, make_executor, user_filter):
        store = ScriptedStoreClient([make_page(1)])
        token = CancellationToken()
        token.cancel("client disconnected")

        with pytest.raises(QueryCancelledError):
            make_executor(store).execute(user_filter, cancellation_token=token)

        assert store.call_count == 0

    def test_cancelled_during_backoff(self, make_executor, user_filter, fake_clock):
        store = ScriptedStoreClient([ThrottledError("slow down"), make_page(1)])
        token = CancellationToken()
        fake_clock.on_sleep = lambda seconds: token.cancel()

        with pytest.raises(QueryCancelledError):
            make_executor(store).execute(user_filter, cancellation_token=token)

        assert store.call_count == 1

    def test_store_cancellation_propagates(self, make_executor, user_filter):
        store = ScriptedStoreClient([QueryCancelledError("Query cancelled by caller")])

        with pytest.raises(QueryCancelledError):
            make_executor(store).execute(user_filter, cancellation_token=CancellationToken())

    def test_token_is_passed_to_store(self, make_executor, user_filter):
        store = Mock()
        store.query.return_value = make_page(1)
        token = CancellationToken()

        make_executor(store).execute(user_filter, cancellation_token=token)

        assert store.query.call_args[0][1] is token


def test_shared_cache_instance_across_executors(make_executor, user_filter, fake_clock):
    cache = InMemoryResultCache(clock=fake_clock)
    store = ScriptedStoreClient([make_page(2)])

    make_executor(store, cache=cache).execute(user_filter)
    make_executor(store, cache=cache).execute(user_filter)

    assert store.call_count == 1
