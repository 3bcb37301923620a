"""Retry strategy and error classification for provider calls.

Every exception raised by a provider call is normalized into a PluginError
before the retry decision; adapter-level classification always wins over
the generic rules here.
"""

import concurrent.futures
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import httpx

from ...cancellation import is_cancellation
from ...config import get_retry_config_values
from ...errors import ErrorKind, PluginError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRYABLE_KINDS = frozenset(
    {ErrorKind.NETWORK, ErrorKind.TIMEOUT, ErrorKind.RATE_LIMIT}
)


def _status_of(error: BaseException) -> int | None:
    """HTTP status carried by an exception, if any."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def classify_error(error: BaseException) -> PluginError:
    """Normalize any exception into a PluginError.

    Order of precedence:
        1. An existing PluginError is returned unchanged.
        2. Cancellation markers become TIMEOUT.
        3. Transport and connection failures become NETWORK.
        4. Exceptions carrying an HTTP status are mapped by status.
        5. Everything else becomes UNKNOWN with the original in details.

    Args:
        error: Exception raised by a provider call.

    Returns:
        Classified PluginError.
    """
    if isinstance(error, PluginError):
        return error

    if isinstance(error, (concurrent.futures.CancelledError, TimeoutError)):
        return PluginError(
            ErrorKind.TIMEOUT, retryable=True, details={"error": repr(error)}
        )

    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return PluginError(
            ErrorKind.NETWORK, retryable=True, details={"error": repr(error)}
        )

    status = _status_of(error)
    if status is not None:
        details = {"status": status, "error": repr(error)}
        if status in (401, 403):
            return PluginError(ErrorKind.AUTH, details=details, status_code=status)
        if status == 429:
            return PluginError(
                ErrorKind.RATE_LIMIT, retryable=True, details=details, status_code=status
            )
        if status >= 500:
            return PluginError(
                ErrorKind.API_ERROR, retryable=True, details=details, status_code=status
            )
        return PluginError(
            ErrorKind.API_ERROR,
            f"API error: {status}",
            details=details,
            status_code=status,
        )

    return PluginError(
        ErrorKind.UNKNOWN,
        str(error) or None,
        details={"error": error},
    )


@dataclass
class RetryConfig:
    """Configuration for retry strategy.

    Attributes:
        max_attempts: Total attempts including the first call.
        initial_delay: Delay before the first retry (seconds).
        max_delay: Maximum delay between retries (seconds).
        backoff_multiplier: Growth factor applied after each failure.
        retryable_kinds: Error kinds that trigger another attempt.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0
    retryable_kinds: frozenset[ErrorKind] = field(
        default_factory=lambda: DEFAULT_RETRYABLE_KINDS
    )

    @classmethod
    def from_environment(cls) -> "RetryConfig":
        """Build a config from GENBRIDGE_RETRY_* variables."""
        return cls(**get_retry_config_values())


class RetryStrategy:
    """Runs an operation with exponential backoff on transient failures.

    Example:
        >>> strategy = RetryStrategy(RetryConfig(max_attempts=3))
        >>> response = strategy.run(lambda: adapter.generate_text(prompt, settings))
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        """Initialize retry strategy.

        Args:
            config: Retry configuration options.
            sleep: Blocking sleep function, replaceable in tests.
        """
        self._config = config or RetryConfig()
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    def get_backoff_delay(self, attempt: int) -> float:
        """Calculate backoff delay after a failed attempt.

        Args:
            attempt: Failed attempt number (1-based).

        Returns:
            Delay in seconds before the next attempt.
        """
        delay = self._config.initial_delay * (
            self._config.backoff_multiplier ** max(attempt - 1, 0)
        )
        return min(delay, self._config.max_delay)

    def should_retry(self, error: PluginError, attempt: int) -> bool:
        """Determine if a classified error should trigger another attempt.

        Args:
            error: Classified error from the failed attempt.
            attempt: Failed attempt number (1-based).

        Returns:
            True if another attempt should be made.
        """
        if attempt >= self._config.max_attempts or is_cancellation(error):
            return False
        return error.kind in self._config.retryable_kinds

    def run(self, operation: Callable[[], T]) -> T:
        """Invoke an operation, retrying transient failures.

        Args:
            operation: Zero-argument callable performing one attempt.

        Returns:
            The operation's result.

        Raises:
            PluginError: The classified error of the last failed attempt.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation()
            except Exception as e:
                error = classify_error(e)
                if not self.should_retry(error, attempt):
                    if error is e:
                        raise
                    raise error from e

                delay = self.get_backoff_delay(attempt)
                logger.warning(
                    f"Retry attempt {attempt}/{self._config.max_attempts} "
                    f"after {delay * 1000:.0f}ms ({error.kind.value}: {error.message})"
                )
                self._sleep(delay)


__all__ = [
    "RetryStrategy",
    "RetryConfig",
    "classify_error",
    "DEFAULT_RETRYABLE_KINDS",
]
