"""Cancellation and deadline token for outbound requests.

A Context governs only the transport call. It never affects decoding or
error classification of a response that has already arrived.
"""

import threading
import time


class ContextError(Exception):
    """Base exception for a context that is done."""

    pass


class ContextCancelledError(ContextError):
    """Raised when the context was cancelled explicitly."""

    def __init__(self) -> None:
        super().__init__("context canceled")


class DeadlineExceededError(ContextError):
    """Raised when the context's deadline has passed."""

    def __init__(self) -> None:
        super().__init__("context deadline exceeded")


class Context:
    """Cancellation token with an optional deadline.

    Example:
        >>> ctx = Context(deadline_seconds=5)
        >>> ctx.done
        False
        >>> ctx.cancel()
        >>> ctx.done
        True
    """

    def __init__(self, deadline_seconds: float | None = None) -> None:
        self._cancelled = threading.Event()
        self._deadline = None if deadline_seconds is None else time.monotonic() + deadline_seconds

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def error(self) -> ContextError | None:
        """Return the error describing why the context is done, if it is."""
        if self.cancelled:
            return ContextCancelledError()
        if self.expired:
            return DeadlineExceededError()
        return None
