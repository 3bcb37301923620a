"""In-memory response cache."""

from .lib import (
    DEFAULT_MAX_SIZE,
    DEFAULT_TTL,
    CacheEntry,
    ResponseCache,
    djb2_hash,
    make_cache_key,
)

__all__ = [
    "CacheEntry",
    "ResponseCache",
    "make_cache_key",
    "djb2_hash",
    "DEFAULT_MAX_SIZE",
    "DEFAULT_TTL",
]
