"""Tests for core logging module."""

import logging
from io import StringIO

import pytest

from .lib import get_logger, setup_logging


class TestLogging:
    """Test core logging API."""

    @pytest.mark.unit
    def test_get_logger(self) -> None:
        """Verify logger instance creation."""
        logger = get_logger("test")
        assert logger.name == "test"
        assert isinstance(logger, logging.Logger)

    @pytest.mark.unit
    def test_get_logger_default_name(self) -> None:
        """Verify default logger name."""
        assert get_logger().name == "genbridge"

    @pytest.mark.unit
    def test_setup_logging_accepts_level_name(self, monkeypatch) -> None:
        """Level names are translated before reaching basicConfig."""
        captured = {}
        monkeypatch.setattr(
            logging, "basicConfig", lambda **kwargs: captured.update(kwargs)
        )
        stream = StringIO()
        setup_logging(level="debug", stream=stream)
        assert captured["level"] == logging.DEBUG
        assert captured["stream"] is stream

    @pytest.mark.unit
    def test_setup_logging_unknown_name_falls_back(self, monkeypatch) -> None:
        """Unknown level names fall back to INFO."""
        captured = {}
        monkeypatch.setattr(
            logging, "basicConfig", lambda **kwargs: captured.update(kwargs)
        )
        setup_logging(level="chatty")
        assert captured["level"] == logging.INFO
