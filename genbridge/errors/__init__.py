"""Error taxonomy for genbridge.

Every failure is normalized to one PluginError tagged with an ErrorKind.
"""

from .lib import (
    DEFAULT_MESSAGES,
    GEO_BLOCK_MARKERS,
    ErrorKind,
    PluginError,
    classify_http_error,
    extract_error_message,
    invalid_config,
    is_geo_blocked,
)

__all__ = [
    "ErrorKind",
    "PluginError",
    "DEFAULT_MESSAGES",
    "GEO_BLOCK_MARKERS",
    "invalid_config",
    "extract_error_message",
    "is_geo_blocked",
    "classify_http_error",
]
