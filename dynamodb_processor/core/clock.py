"""
Clock and delay provider.

Cache expiry, retry backoff and page pacing all read time and sleep through
a ``Clock`` so tests can substitute a deterministic one.
"""

import time
from typing import Optional

from .cancellation import CancellationToken


class Clock:
    """Monotonic clock whose sleeps honor cancellation."""

    def now(self) -> float:
        """Current monotonic time in seconds."""
        return time.monotonic()

    def sleep(self, seconds: float, cancellation_token: Optional[CancellationToken] = None) -> None:
        """Sleep for ``seconds``, aborting early if the token is cancelled.

        Raises:
            QueryCancelledError: If the token is (or becomes) cancelled
        """
        if cancellation_token is None:
            if seconds > 0:
                time.sleep(seconds)
            return

        cancellation_token.raise_if_cancelled("delay")
        if seconds > 0 and cancellation_token.wait(seconds):
            cancellation_token.raise_if_cancelled("delay")


SYSTEM_CLOCK = Clock()
