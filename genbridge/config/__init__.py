"""Centralized configuration management for genbridge.

Provides unified access to all configuration via the `get_environment()` function.

Example:
    >>> from genbridge.config import EnvVar, get_environment
    >>>
    >>> ttl = get_environment(EnvVar.CACHE_TTL)  # Returns float: 1800.0
    >>> ttl = get_environment(EnvVar.CACHE_TTL, override=60.0)
    >>>
    >>> for var in list_environment_variables("retry"):
    ...     info = get_environment_info(var)
    ...     print(f"{info.name}: {info.description}")

Environment Variable Categories:
    retry: Attempts and backoff delays
    cache: Response cache size, TTL and on/off switch
    batch: Pauses between items of multi-item runs
    service: HTTP timeout and forwarding relay
    settings: Provider settings file
    logging: Log level
"""

from .lib import (
    # Core types
    EnvConfig,
    EnvVar,
    get_cache_settings,
    # Main interface
    get_environment,
    get_environment_info,
    get_relay_url,
    get_retry_config_values,
    get_settings_path,
    # Introspection
    list_environment_variables,
)

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
