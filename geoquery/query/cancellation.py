"""
Cooperative cancellation for spatial queries.
"""

import threading
import time
from typing import List, Optional

from ..common import QueryCancelledError


class CancellationToken:
    """
    Cancellation signal shared by a query and its workers.

    A token is cancelled explicitly with cancel() or implicitly once its
    deadline passes. Workers check it before every store call, between store
    pages, and while sleeping between retries.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )
        self._children: List["CancellationToken"] = []
        self._parent: Optional["CancellationToken"] = None
        self._lock = threading.Lock()
        self.reason: Optional[str] = None

    @classmethod
    def with_timeout(cls, timeout_seconds: float) -> "CancellationToken":
        return cls(timeout_seconds=timeout_seconds)

    def child(self) -> "CancellationToken":
        """
        Token cancelled together with this one, but cancellable on its own.

        Shares this token's deadline. Call release() on the child once its
        work is done so the parent does not keep it alive.
        """
        token = CancellationToken()
        token._deadline = self._deadline
        token._parent = self
        with self._lock:
            self._children.append(token)
        if self.cancelled:
            token.cancel(self.reason or "cancelled")
        return token

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if not self._event.is_set():
                self.reason = reason
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel(reason)

    def release(self) -> None:
        """Detach from the parent token; later parent cancellations no longer reach it."""
        parent, self._parent = self._parent, None
        if parent is None:
            return
        with parent._lock:
            if self in parent._children:
                parent._children.remove(self)

    @property
    def remaining_seconds(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline exceeded")
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise QueryCancelledError(f"Query {self.reason}")

    def wait(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, waking early on cancellation.

        Returns:
            True if the token was cancelled while waiting
        """
        remaining = self.remaining_seconds
        reaches_deadline = remaining is not None and seconds >= remaining
        if reaches_deadline:
            seconds = remaining
        if not self._event.wait(seconds) and reaches_deadline:
            self.cancel("deadline exceeded")
        return self.cancelled
