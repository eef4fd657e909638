"""
Query construction and paginated execution.

- QueryBuilder: filter -> index choice, key condition, residual filter
- RetryPolicy: exponential backoff for throttled calls
- QueryExecutor: cache check, store call with retry, cache store
- PaginationDriver: sequential multi-page retrieval up to an item cap
"""

from .builder import SUBJECT_INDEX, SUBJECT_SYSTEM_INDEX, SYSTEM_INDEX, QueryBuilder
from .executor import QueryExecutor
from .paginator import PaginationDriver
from .retry import RetryPolicy, is_throttling_error

__all__ = [
    "PaginationDriver",
    "QueryBuilder",
    "QueryExecutor",
    "RetryPolicy",
    "SUBJECT_INDEX",
    "SUBJECT_SYSTEM_INDEX",
    "SYSTEM_INDEX",
    "is_throttling_error",
]
