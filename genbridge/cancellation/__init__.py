"""Cooperative cancellation signals."""

from .lib import CANCELLED_MESSAGE, CancellationSignal, is_cancellation

__all__ = ["CancellationSignal", "CANCELLED_MESSAGE", "is_cancellation"]
