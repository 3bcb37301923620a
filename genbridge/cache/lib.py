"""In-memory LRU response cache with time-to-live expiry.

Keys are short hashes of everything that shapes a text response, so
identical requests against the same provider are answered without an
API call. Entries never outlive the process.
"""

from __future__ import annotations

import logging
import string
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ..llm.backend.base import TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 50
DEFAULT_TTL = 30 * 60.0

_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class CacheEntry:
    """One cached response.

    Attributes:
        key: Cache key.
        text: Generated text.
        tokens: Usage reported for the original call.
        stored_at: Clock reading when the entry was written.
    """

    key: str
    text: str
    tokens: TokenUsage
    stored_at: float


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def djb2_hash(text: str) -> str:
    """32-bit DJB2 hash of a string, rendered in base 36."""
    value = 5381
    for char in text:
        value = ((value << 5) + value + ord(char)) & 0xFFFFFFFF
    return _to_base36(value)


def make_cache_key(
    provider_id: str,
    prompt: str,
    system_prompt: str | None,
    temperature: float,
    max_tokens: int,
) -> str:
    """Derive the cache key for a text request.

    A missing system prompt and an empty one produce the same key.

    Example:
        >>> key = make_cache_key("main", "Hello", None, 0.7, 100)
        >>> key == make_cache_key("main", "Hello", "", 0.7, 100)
        True
    """
    raw = "|".join(
        [
            provider_id,
            prompt,
            system_prompt or "",
            repr(float(temperature)),
            str(int(max_tokens)),
        ]
    )
    return djb2_hash(raw)


class ResponseCache:
    """Thread-safe LRU cache with per-entry TTL.

    Reads refresh recency, writes evict the least recently used entry when
    the cache is full, and expired entries are dropped lazily or in bulk
    via `purge_expired()`.

    Example:
        >>> cache = ResponseCache(max_size=2, ttl=60.0)
        >>> cache.set("k1", "hello", TokenUsage(3, 1))
        >>> cache.get("k1").text
        'hello'
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            max_size: Maximum number of entries (at least 1).
            ttl: Entry lifetime in seconds.
            clock: Monotonic time source, replaceable in tests.
        """
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl(self) -> float:
        return self._ttl

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at > self._ttl

    def get(self, key: str) -> CacheEntry | None:
        """Return a live entry and mark it most recently used.

        Expired entries are removed and reported as missing.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return None
            self._entries.move_to_end(key)
            return entry

    def set(self, key: str, text: str, tokens: TokenUsage) -> None:
        """Store a response, evicting the least recently used entry if full."""
        with self._lock:
            self._entries.pop(key, None)
            if len(self._entries) >= self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache full, evicted: {evicted}")
            self._entries[key] = CacheEntry(
                key=key, text=text, tokens=tokens, stored_at=self._clock()
            )

    def has(self, key: str) -> bool:
        """Check for a live entry without changing recency."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        """Remove an entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def size(self) -> int:
        """Number of stored entries, expired ones included until purged."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size

    def purge_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)


__all__ = [
    "CacheEntry",
    "ResponseCache",
    "make_cache_key",
    "djb2_hash",
    "DEFAULT_MAX_SIZE",
    "DEFAULT_TTL",
]
