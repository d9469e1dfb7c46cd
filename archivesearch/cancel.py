"""
Cooperative cancellation for searches.
"""

import threading
import time
from typing import Optional

from .errors import SearchCancelled


class CancelToken:
    """
    Cancellation flag with an optional deadline.

    Shared by the coordinator, every scan worker and the cache; each of
    them polls it between units of work.

    Args:
        timeout: Seconds from now after which the token counts as cancelled
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise SearchCancelled("Search cancelled")


def is_cancelled(token: Optional[CancelToken]) -> bool:
    return token is not None and token.cancelled
