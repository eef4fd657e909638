"""
Result cache for query pages.

``ResultCache`` is the interface the query executor depends on; a
distributed cache can implement it without touching callers. Implementations
raise ``CacheError`` on failure, and the executor treats that as a miss.

``InMemoryResultCache`` is the process-local implementation: a
``cachetools.TLRUCache`` (least-recently-used eviction with a per-entry
time-to-live) guarded by a lock, since cachetools caches are not
thread-safe on their own.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, NamedTuple, Optional

from cachetools import TLRUCache

from ..exceptions import CacheError
from ..models.attribute_value import AttributeValue, item_to_dynamodb
from ..models.filters import QueryFilter
from ..utils import format_timestamp, stable_json
from .clock import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "query:"


def build_cache_key(query_filter: QueryFilter, cursor: Optional[Dict[str, AttributeValue]] = None) -> str:
    """Build the deterministic cache key for one page of a query.

    Field order is fixed and absent fields render as JSON ``null``. The
    cursor is the explicit one when given, otherwise the filter's own start
    key. Limit, scan direction and projection are part of the key because
    they change the page contents. An unset scan direction is keyed as
    ascending, the direction the query runs in.
    """
    effective_cursor = cursor if cursor is not None else query_filter.exclusive_start_key
    parts = [
        query_filter.subject_id,
        query_filter.system_id,
        query_filter.resource_id,
        format_timestamp(query_filter.start_date) if query_filter.start_date else None,
        format_timestamp(query_filter.end_date) if query_filter.end_date else None,
        query_filter.limit,
        query_filter.scan_forward is not False,
        query_filter.projection,
        item_to_dynamodb(effective_cursor, binary_as_base64=True) if effective_cursor else None,
    ]
    return CACHE_KEY_PREFIX + stable_json(parts)


class ResultCache(ABC):
    """Key to page cache used by the query executor."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store ``value`` under ``key``; None uses the default TTL."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class _CacheEntry(NamedTuple):
    value: Any
    ttl: float


class InMemoryResultCache(ResultCache):
    """Bounded, time-expiring, thread-safe in-process cache."""

    def __init__(self, max_size: int = 1000, default_ttl_seconds: float = 300.0, clock: Optional[Clock] = None):
        """Initialize the cache.

        Args:
            max_size: Maximum number of entries before LRU eviction
            default_ttl_seconds: TTL used when ``set`` is given none
            clock: Time source for expiry (monotonic seconds)
        """
        self.max_size = max_size
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock or SYSTEM_CLOCK
        self._lock = threading.RLock()
        self._cache = TLRUCache(maxsize=max_size, ttu=self._expires_at, timer=self._clock.now)

    @staticmethod
    def _expires_at(key, entry: _CacheEntry, now: float) -> float:
        return now + entry.ttl

    def get(self, key: str) -> Optional[Any]:
        try:
            with self._lock:
                entry = self._cache.get(key)
        except Exception as e:
            raise CacheError(f"Cache read failed for key: {key}", original_error=e) from e

        if entry is None:
            logger.debug(f"Cache miss for key: {key}")
            return None
        logger.debug(f"Cache hit for key: {key}")
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        try:
            with self._lock:
                if ttl <= 0:
                    self._cache.pop(key, None)
                    return
                self._cache[key] = _CacheEntry(value, ttl)
        except Exception as e:
            raise CacheError(f"Cache write failed for key: {key}", original_error=e) from e
        logger.debug(f"Value cached for key: {key} (ttl={ttl}s)")

    def remove(self, key: str) -> None:
        try:
            with self._lock:
                self._cache.pop(key, None)
        except Exception as e:
            raise CacheError(f"Cache remove failed for key: {key}", original_error=e) from e

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)


_shared_cache: Optional[InMemoryResultCache] = None
_shared_cache_lock = threading.Lock()


def get_shared_cache(max_size: int = 1000, default_ttl_seconds: float = 300.0) -> InMemoryResultCache:
    """Return the process-wide cache, creating it on first use.

    Sizing arguments only apply to the first call.
    """
    global _shared_cache
    with _shared_cache_lock:
        if _shared_cache is None:
            _shared_cache = InMemoryResultCache(max_size=max_size, default_ttl_seconds=default_ttl_seconds)
        return _shared_cache


def reset_shared_cache() -> None:
    """Drop the process-wide cache (tests and configuration reloads)."""
    global _shared_cache
    with _shared_cache_lock:
        _shared_cache = None
