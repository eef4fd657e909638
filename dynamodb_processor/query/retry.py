"""
Throttling retry policy.

A ``RetryPolicy`` is a plain value (attempt cap, base delay, backoff factor,
retryable-error predicate) that the query executor applies around each
backend call. The loop itself is tenacity's; sleeping is delegated to the
caller so backoff goes through the injected clock and honors cancellation.
"""

from typing import Callable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..config import QueryLimits
from ..exceptions import ThrottledError

T = TypeVar("T")


def is_throttling_error(exception: BaseException) -> bool:
    """Only throttling is retried; every other failure propagates at once."""
    return isinstance(exception, ThrottledError)


class RetryPolicy(BaseModel):
    """Exponential backoff for throttled backend calls.

    With the defaults (3 retries, 100ms, factor 2) a call is attempted at
    most four times, waiting 0.1s, 0.2s and 0.4s in between.
    """

    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    base_delay_seconds: float = Field(default=0.1, ge=0, description="Delay before the first retry")
    backoff_factor: float = Field(default=2.0, ge=1.0, description="Delay multiplier per retry")
    retryable: Callable[[BaseException], bool] = Field(default=is_throttling_error, exclude=True)

    model_config = ConfigDict(frozen=True)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_number: int) -> float:
        """Delay before retry ``retry_number`` (1-based)."""
        return self.base_delay_seconds * (self.backoff_factor ** (retry_number - 1))

    def call(
        self,
        fn: Callable[[], T],
        sleep: Callable[[float], None],
        on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    ) -> T:
        """Invoke ``fn`` until it succeeds, raises a non-retryable error or the cap is hit.

        Args:
            fn: Zero-argument callable performing one attempt
            sleep: Called with the backoff delay in seconds between attempts
            on_retry: Called as ``on_retry(attempt, error, delay)`` before each sleep

        Returns:
            The result of the first successful attempt

        Raises:
            The last retryable error once attempts are exhausted, or the first
            non-retryable error unchanged
        """
        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            if on_retry is not None:
                on_retry(retry_state.attempt_number, error, delay)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay_seconds, exp_base=self.backoff_factor, min=0),
            retry=retry_if_exception(self.retryable),
            sleep=sleep,
            before_sleep=before_sleep,
            reraise=True,
        )
        return retrying(fn)

    @classmethod
    def from_limits(cls, limits: QueryLimits) -> 'RetryPolicy':
        return cls(
            max_retries=limits.max_retries,
            base_delay_seconds=limits.retry_base_delay_ms / 1000.0,
            backoff_factor=limits.retry_backoff_factor,
        )
