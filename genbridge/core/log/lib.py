"""Core logging implementation for genbridge."""

import logging
import sys
from typing import Optional

__all__ = ["get_logger", "setup_logging"]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int | str = logging.INFO, stream=sys.stderr) -> None:
    """Configure basic logging.

    Args:
        level: Logging level, as a number or a name such as "DEBUG".
        stream: Output stream.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=stream)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Name of the logger.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name or "genbridge")
