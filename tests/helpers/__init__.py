"""
Test helpers for the query processor.

Deterministic stand-ins for the clock and the DynamoDB store client so the
executor, retry policy and pagination driver can be tested without AWS or
real sleeps.
"""

from .fakes import (
    FakeClock,
    FailingCache,
    RecordingMetricsSink,
    ScriptedStoreClient,
    make_item,
    make_page,
)

__all__ = [
    'FakeClock',
    'FailingCache',
    'RecordingMetricsSink',
    'ScriptedStoreClient',
    'make_item',
    'make_page',
]
