"""
Cancellation and deadline context for repository operations.

An :class:`OperationContext` is checked before every backend round trip. A
cancelled or expired context aborts the operation with
:class:`~entity_repository.exceptions.OperationCancelledError` or
:class:`~entity_repository.exceptions.DeadlineExceededError` before the next
store call is issued. Nothing is retried.
"""

from __future__ import annotations

import threading
import time

from .exceptions import DeadlineExceededError, OperationCancelledError


class OperationContext:
    """
    Cancellation token with an optional monotonic deadline.

    Parameters
    ----------
    timeout_seconds:
        Relative deadline measured from construction. ``None`` disables the
        deadline.
    parent:
        Optional parent context. Cancelling the parent cancels this context
        and the earlier of both deadlines applies.

    Notes
    -----
    The context is not consulted while a store call is in flight. A call
    that has already been sent runs until the backend replies or its socket
    timeout fires (``RedisStoreConfig.socket_timeout_seconds`` for Redis),
    and cancellation takes effect at the next store call.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        parent: "OperationContext | None" = None,
    ) -> None:
        if timeout_seconds is not None and timeout_seconds < 0:
            raise ValueError("OperationContext.timeout_seconds must be >= 0.")
        self._cancelled = threading.Event()
        self._parent = parent
        deadline = None
        if timeout_seconds is not None:
            deadline = time.monotonic() + float(timeout_seconds)
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline

    @classmethod
    def background(cls) -> "OperationContext":
        """Return a context that is never cancelled and has no deadline."""
        return cls()

    @property
    def deadline(self) -> float | None:
        """Return the ``time.monotonic`` deadline, or ``None``."""
        return self._deadline

    def remaining_seconds(self) -> float | None:
        """Return seconds left before the deadline, or ``None`` without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self) -> None:
        """Cancel this context. Safe to call from any thread, more than once."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def check(self) -> None:
        """
        Raise if the context can no longer run backend calls.

        Raises
        ------
        OperationCancelledError
            If the context (or its parent) was cancelled.
        DeadlineExceededError
            If the deadline has passed.
        """
        if self.cancelled:
            raise OperationCancelledError("Operation context was cancelled.")
        if self.expired:
            raise DeadlineExceededError("Operation context deadline exceeded.")
