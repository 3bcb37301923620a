"""Centralized environment configuration management for genbridge.

Provides a unified interface for all environment variables with:
- Single `get_environment()` function for all configuration
- Type-safe enum with metadata (default, type, description)
- Consistent resolution: override > environment > default

Example:
    >>> from genbridge.config import EnvVar, get_environment
    >>>
    >>> # Get values with automatic type conversion
    >>> attempts = get_environment(EnvVar.RETRY_MAX_ATTEMPTS)  # Returns int
    >>> relay = get_environment(EnvVar.RELAY_URL)  # Returns str | None
    >>>
    >>> # Override at runtime
    >>> attempts = get_environment(EnvVar.RETRY_MAX_ATTEMPTS, override=5)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, overload

# =============================================================================
# Environment Variable Configuration
# =============================================================================


@dataclass(frozen=True)
class EnvConfig:
    """Metadata for an environment variable.

    Attributes:
        name: Environment variable name (e.g., "GENBRIDGE_CACHE_MAX_SIZE").
        default: Default value if not set in environment.
        var_type: Python type for value conversion (str, int, float, bool, Path).
        description: Human-readable description.
        category: Grouping category for documentation.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"


class EnvVar(Enum):
    """All environment variables used by genbridge.

    Each member contains an EnvConfig with name, default, type, and description.
    Use with `get_environment()` for type-safe access.

    Categories:
        - retry: Retry and backoff policy
        - cache: Response cache sizing
        - batch: Multi-item generation pacing
        - service: HTTP transport and relay configuration
        - settings: Provider settings source
        - logging: Log output
    """

    # -------------------------------------------------------------------------
    # Retry Policy
    # -------------------------------------------------------------------------
    RETRY_MAX_ATTEMPTS = EnvConfig(
        name="GENBRIDGE_RETRY_MAX_ATTEMPTS",
        default=3,
        var_type=int,
        description="Total attempts per request, first call included",
        category="retry",
    )
    RETRY_INITIAL_DELAY = EnvConfig(
        name="GENBRIDGE_RETRY_INITIAL_DELAY",
        default=1.0,
        var_type=float,
        description="Delay before the first retry (seconds)",
        category="retry",
    )
    RETRY_MAX_DELAY = EnvConfig(
        name="GENBRIDGE_RETRY_MAX_DELAY",
        default=10.0,
        var_type=float,
        description="Upper bound for the backoff delay (seconds)",
        category="retry",
    )
    RETRY_BACKOFF_MULTIPLIER = EnvConfig(
        name="GENBRIDGE_RETRY_BACKOFF_MULTIPLIER",
        default=2.0,
        var_type=float,
        description="Factor applied to the delay after each failed attempt",
        category="retry",
    )

    # -------------------------------------------------------------------------
    # Response Cache
    # -------------------------------------------------------------------------
    CACHE_MAX_SIZE = EnvConfig(
        name="GENBRIDGE_CACHE_MAX_SIZE",
        default=50,
        var_type=int,
        description="Maximum number of cached responses",
        category="cache",
    )
    CACHE_TTL = EnvConfig(
        name="GENBRIDGE_CACHE_TTL",
        default=1800.0,
        var_type=float,
        description="Cached response lifetime (seconds)",
        category="cache",
    )
    CACHE_ENABLED = EnvConfig(
        name="GENBRIDGE_CACHE_ENABLED",
        default=True,
        var_type=bool,
        description="Enable the in-memory response cache",
        category="cache",
    )

    # -------------------------------------------------------------------------
    # Multi-item Pacing
    # -------------------------------------------------------------------------
    BATCH_DELAY = EnvConfig(
        name="GENBRIDGE_BATCH_DELAY",
        default=0.2,
        var_type=float,
        description="Pause between batch items (seconds)",
        category="batch",
    )
    LAYER_DELAY = EnvConfig(
        name="GENBRIDGE_LAYER_DELAY",
        default=0.3,
        var_type=float,
        description="Pause between per-layer items (seconds)",
        category="batch",
    )

    # -------------------------------------------------------------------------
    # Service Configuration
    # -------------------------------------------------------------------------
    HTTP_TIMEOUT = EnvConfig(
        name="GENBRIDGE_HTTP_TIMEOUT",
        default=60.0,
        var_type=float,
        description="Transport timeout for provider HTTP calls (seconds)",
        category="service",
    )
    RELAY_URL = EnvConfig(
        name="GENBRIDGE_RELAY_URL",
        default=None,
        var_type=str,
        description="Forwarding relay for providers that require one",
        category="service",
    )

    # -------------------------------------------------------------------------
    # Settings and Logging
    # -------------------------------------------------------------------------
    SETTINGS_PATH = EnvConfig(
        name="GENBRIDGE_SETTINGS_PATH",
        default=None,
        var_type=Path,
        description="JSON file holding provider configurations",
        category="settings",
    )
    LOG_LEVEL = EnvConfig(
        name="GENBRIDGE_LOG_LEVEL",
        default="INFO",
        var_type=str,
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
        category="logging",
    )


# =============================================================================
# Type Conversion Helpers
# =============================================================================


def _parse_bool(value: str) -> bool | None:
    """Parse string to boolean.

    Recognizes: true/false, 1/0, yes/no (case-insensitive).
    Returns None for unrecognized values.
    """
    normalized = value.lower().strip()
    if normalized in ("true", "1", "yes"):
        return True
    if normalized in ("false", "0", "no"):
        return False
    return None


def _convert_value(value: str | None, var_type: type, default: Any) -> Any:
    """Convert string value to target type.

    Args:
        value: Raw string value from environment (or None).
        var_type: Target Python type.
        default: Default value if conversion fails or value is None.

    Returns:
        Converted value or default.
    """
    if value is None:
        return default

    if var_type is str:
        return value

    if var_type is int:
        try:
            return int(value)
        except ValueError:
            return default

    if var_type is float:
        try:
            return float(value)
        except ValueError:
            return default

    if var_type is bool:
        result = _parse_bool(value)
        return result if result is not None else default

    if var_type is Path:
        return Path(value)

    # Unknown type, return as-is
    return value


# =============================================================================
# Main Interface
# =============================================================================


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: float) -> float: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: bool) -> bool: ...
@overload
def get_environment(env_var: EnvVar, override: Path) -> Path: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Get environment variable value with type conversion.

    Resolution priority:
        1. Explicit override parameter (highest)
        2. Environment variable value
        3. Default from EnvConfig (lowest)

    Args:
        env_var: Environment variable enum member.
        override: Optional override value (bypasses env lookup).

    Returns:
        Value converted to the appropriate type.

    Example:
        >>> get_environment(EnvVar.CACHE_MAX_SIZE)
        50
        >>> get_environment(EnvVar.CACHE_MAX_SIZE, override=10)
        10
    """
    config: EnvConfig = env_var.value

    if override is not None:
        return override

    raw_value = os.environ.get(config.name)
    return _convert_value(raw_value, config.var_type, config.default)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    """Get metadata for an environment variable.

    Args:
        env_var: Environment variable enum member.

    Returns:
        EnvConfig with name, default, type, and description.
    """
    return env_var.value


# =============================================================================
# Convenience Functions
# =============================================================================


def get_retry_config_values() -> dict[str, Any]:
    """Get retry policy values keyed by RetryConfig field name."""
    return {
        "max_attempts": get_environment(EnvVar.RETRY_MAX_ATTEMPTS),
        "initial_delay": get_environment(EnvVar.RETRY_INITIAL_DELAY),
        "max_delay": get_environment(EnvVar.RETRY_MAX_DELAY),
        "backoff_multiplier": get_environment(EnvVar.RETRY_BACKOFF_MULTIPLIER),
    }


def get_cache_settings() -> dict[str, Any]:
    """Get response cache sizing keyed by ResponseCache argument name."""
    return {
        "max_size": get_environment(EnvVar.CACHE_MAX_SIZE),
        "ttl": get_environment(EnvVar.CACHE_TTL),
    }


def get_relay_url(override: str | None = None) -> str | None:
    """Get the forwarding relay URL.

    Resolution: override > GENBRIDGE_RELAY_URL > None (use the
    capability's own relay).
    """
    if override:
        return override
    return get_environment(EnvVar.RELAY_URL) or None


def get_settings_path(override: Path | str | None = None) -> Path | None:
    """Get the provider settings file path.

    Resolution: override > GENBRIDGE_SETTINGS_PATH > None.
    """
    if override is not None:
        return Path(override)
    return get_environment(EnvVar.SETTINGS_PATH)


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """List all environment variables, optionally filtered by category.

    Args:
        category: Filter by category (retry, cache, batch, service,
                 settings, logging). None returns all variables.

    Returns:
        List of EnvVar enum members.
    """
    if category is None:
        return list(EnvVar)

    return [var for var in EnvVar if var.value.category == category]


__all__ = [
    # Core types
    "EnvConfig",
    "EnvVar",
    # Main interface
    "get_environment",
    "get_environment_info",
    # Convenience functions
    "get_retry_config_values",
    "get_cache_settings",
    "get_relay_url",
    "get_settings_path",
    # Introspection
    "list_environment_variables",
]
