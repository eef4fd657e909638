"""
Caller-supplied cancellation signal.

Backend calls, retry backoff and the inter-page delay all wait on the same
token, so cancelling it aborts whichever of them is in progress.
"""

import threading
from typing import Optional

from ..exceptions import QueryCancelledError


class CancellationToken:
    """Thread-safe, one-shot cancellation flag."""

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self._reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self, operation: str = "query") -> None:
        if self._event.is_set():
            context = {'operation': operation}
            if self._reason:
                context['reason'] = self._reason
            raise QueryCancelledError(f"{operation} cancelled by caller", context=context)
