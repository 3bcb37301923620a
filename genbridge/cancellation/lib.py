"""Cooperative cancellation for generation requests.

A CancellationSignal is created per top-level request and passed down to
adapters and multi-item loops, which check it at their suspension points.
Cancellation never interrupts a call in flight; the next check raises.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from ..errors import ErrorKind, PluginError

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "The operation was cancelled."


class CancellationSignal:
    """Thread-safe, one-way cancellation flag.

    Example:
        >>> signal = CancellationSignal.after(60.0)
        >>> signal.throw_if_cancelled()  # raises once the timer fires
        >>> signal.dispose()
    """

    def __init__(self, on_cancel: Callable[[], None] | None = None):
        self._cancelled = False
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self.on_cancel = on_cancel

    @classmethod
    def after(cls, seconds: float) -> CancellationSignal:
        """Create a signal that cancels itself after a delay.

        Args:
            seconds: Delay before cancellation.

        Returns:
            Signal with a running daemon timer.
        """
        signal = cls()
        timer = threading.Timer(seconds, signal.cancel)
        timer.daemon = True
        signal._timer = timer
        timer.start()
        return signal

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Cancel the signal. Repeated calls have no effect."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            timer, self._timer = self._timer, None
            callback = self.on_cancel

        if timer is not None:
            timer.cancel()
        logger.debug("Cancellation requested")
        if callback is not None:
            callback()

    def throw_if_cancelled(self) -> None:
        """Raise a timeout PluginError if the signal was cancelled."""
        if self._cancelled:
            raise PluginError(
                ErrorKind.TIMEOUT,
                CANCELLED_MESSAGE,
                retryable=True,
                details={"reason": "cancelled"},
            )

    def dispose(self) -> None:
        """Stop a pending timer without cancelling."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()


def is_cancellation(error: BaseException) -> bool:
    """Check whether an error was produced by a cancelled signal."""
    return (
        isinstance(error, PluginError)
        and error.kind == ErrorKind.TIMEOUT
        and error.reason == "cancelled"
    )


__all__ = ["CancellationSignal", "CANCELLED_MESSAGE", "is_cancellation"]
