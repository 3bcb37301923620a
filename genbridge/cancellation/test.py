"""Tests for cooperative cancellation."""

import threading

import pytest

from ..errors import ErrorKind, PluginError
from .lib import CancellationSignal, is_cancellation


class TestCancellationSignal:
    """Tests for CancellationSignal."""

    @pytest.mark.unit
    def test_starts_active(self):
        """A fresh signal is not cancelled and does not raise."""
        signal = CancellationSignal()
        assert not signal.cancelled
        signal.throw_if_cancelled()

    @pytest.mark.unit
    def test_cancel_raises_timeout(self):
        """Cancelled signals raise a timeout PluginError."""
        signal = CancellationSignal()
        signal.cancel()
        assert signal.cancelled
        with pytest.raises(PluginError) as exc_info:
            signal.throw_if_cancelled()
        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert is_cancellation(exc_info.value)

    @pytest.mark.unit
    def test_cancel_is_idempotent(self):
        """The callback fires once no matter how often cancel is called."""
        calls = []
        signal = CancellationSignal(on_cancel=lambda: calls.append(1))
        signal.cancel()
        signal.cancel()
        assert calls == [1]

    @pytest.mark.unit
    def test_callback_can_be_set_later(self):
        """on_cancel is a plain attribute."""
        calls = []
        signal = CancellationSignal()
        signal.on_cancel = lambda: calls.append("fired")
        signal.cancel()
        assert calls == ["fired"]

    @pytest.mark.unit
    def test_after_fires(self):
        """Timer variant cancels itself."""
        fired = threading.Event()
        signal = CancellationSignal.after(0.2)
        signal.on_cancel = fired.set
        assert fired.wait(2.0)
        assert signal.cancelled

    @pytest.mark.unit
    def test_dispose_stops_timer(self):
        """Disposed timers never cancel the signal."""
        signal = CancellationSignal.after(0.05)
        signal.dispose()
        threading.Event().wait(0.1)
        assert not signal.cancelled

    @pytest.mark.unit
    def test_other_errors_are_not_cancellation(self):
        """Only errors raised by a signal count as cancellation."""
        assert not is_cancellation(PluginError(ErrorKind.TIMEOUT))
        assert not is_cancellation(ValueError("nope"))
