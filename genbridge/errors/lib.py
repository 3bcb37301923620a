"""Error taxonomy shared by every generation component.

All failures leaving a provider adapter, the retry layer or an orchestrator
are a single PluginError carrying one ErrorKind. Adapters classify HTTP
failures here with provider-specific remediation hints; the generic
classifier in the generator package only fills in what adapters did not.
"""

import json
from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Closed set of failure categories."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    INVALID_CONFIG = "invalid_config"
    API_ERROR = "api_error"
    UNKNOWN = "unknown"


DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Network error. Check your connection and try again.",
    ErrorKind.TIMEOUT: "Request timeout. Please try again.",
    ErrorKind.AUTH: "Authentication failed. Check your API key.",
    ErrorKind.RATE_LIMIT: "Rate limit exceeded. Please wait and try again.",
    ErrorKind.INVALID_CONFIG: "Provider not configured. Go to Settings.",
    ErrorKind.API_ERROR: "API server error. Please try again later.",
    ErrorKind.UNKNOWN: "An unknown error occurred",
}

# Lower-cased fragments providers use when refusing a caller's region.
GEO_BLOCK_MARKERS: tuple[str, ...] = (
    "user location is not supported",
    "unsupported_country_region_territory",
    "country, region, or territory not supported",
    "not available in your country",
    "not available in your region",
    "region is not supported",
)


class PluginError(Exception):
    """Normalized failure raised across component boundaries.

    Attributes:
        kind: Failure category.
        message: User-facing message.
        retryable: Whether repeating the same call may succeed.
        details: Extra context (provider, status, reason, original error).
        status_code: HTTP status when the failure came from a response.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        *,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        self.retryable = retryable
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    @property
    def reason(self) -> str | None:
        """Finer-grained cause recorded by adapter classification."""
        return self.details.get("reason")

    def __repr__(self) -> str:
        return (
            f"PluginError(kind={self.kind.value!r}, message={self.message!r}, "
            f"retryable={self.retryable})"
        )


def invalid_config(message: str, **details: Any) -> PluginError:
    """Build a non-retryable configuration error."""
    return PluginError(ErrorKind.INVALID_CONFIG, message, details=details)


def extract_error_message(body: Any) -> str:
    """Pull the most specific message out of a provider error body.

    Looks at error.message, error, message and detail in that order and
    falls back to the serialized body.
    """
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        for key in ("message", "detail"):
            if body.get(key):
                value = body[key]
                return value if isinstance(value, str) else json.dumps(value)
        return json.dumps(body, ensure_ascii=False)
    if body is None:
        return ""
    return str(body)


def is_geo_blocked(text: str) -> bool:
    """Check whether an error text reports a regional restriction."""
    lowered = text.lower()
    return any(marker in lowered for marker in GEO_BLOCK_MARKERS)


def classify_http_error(
    status: int,
    body: Any,
    *,
    provider_name: str,
    api_key_url: str | None = None,
) -> PluginError:
    """Turn a failed HTTP exchange into a PluginError with a remediation hint.

    Args:
        status: HTTP status code (0 when the response was unreadable).
        body: Parsed JSON body, raw text, or None.
        provider_name: Display name used in messages.
        api_key_url: Where the user can obtain a key, if known.

    Returns:
        Classified PluginError, never raised here.
    """
    detail = extract_error_message(body)
    details: dict[str, Any] = {"provider": provider_name, "status": status}
    if body is not None:
        details["body"] = body

    if status == 0:
        return PluginError(
            ErrorKind.NETWORK,
            f"Cannot connect to {provider_name}. The request was blocked before "
            "a response arrived; configure a relay URL or check your network.",
            retryable=True,
            details={**details, "reason": "blocked"},
            status_code=status,
        )

    if status in (401, 403):
        hint = f" Get a key at {api_key_url}." if api_key_url else ""
        return PluginError(
            ErrorKind.AUTH,
            f"Authentication failed: Invalid API key for {provider_name}. "
            f"Please check your API key in Settings.{hint} Details: {detail}",
            details={**details, "reason": "auth"},
            status_code=status,
        )

    if status == 429:
        return PluginError(
            ErrorKind.RATE_LIMIT,
            f"Rate limit exceeded: You exceeded your current quota for "
            f"{provider_name}. Please wait and try again. Details: {detail}",
            retryable=True,
            details={**details, "reason": "rate_limit"},
            status_code=status,
        )

    if status == 400 and is_geo_blocked(detail):
        return PluginError(
            ErrorKind.API_ERROR,
            f"{provider_name} is not available in your region. Configure a "
            f"relay URL for this provider. Details: {detail}",
            details={**details, "reason": "region_blocked"},
            status_code=status,
        )

    if status == 400:
        return PluginError(
            ErrorKind.API_ERROR,
            f"Bad request to {provider_name}: {detail}",
            details={**details, "reason": "bad_request"},
            status_code=status,
        )

    if status == 402:
        return PluginError(
            ErrorKind.API_ERROR,
            f"Payment required by {provider_name}: check your billing "
            f"settings or balance. Details: {detail}",
            details={**details, "reason": "billing"},
            status_code=status,
        )

    if status == 404:
        return PluginError(
            ErrorKind.API_ERROR,
            f"{provider_name} endpoint or model not found. Check the custom "
            f"URL and model name. Details: {detail}",
            details={**details, "reason": "not_found"},
            status_code=status,
        )

    if status >= 500:
        return PluginError(
            ErrorKind.API_ERROR,
            f"{provider_name} server error: {detail}",
            retryable=True,
            details={**details, "reason": "server_error"},
            status_code=status,
        )

    return PluginError(
        ErrorKind.API_ERROR,
        f"{provider_name} API error ({status}): {detail}",
        details={**details, "reason": "http_error"},
        status_code=status,
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
