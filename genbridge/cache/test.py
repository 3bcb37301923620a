"""Tests for the response cache."""

import pytest

from ..llm.backend.base import TokenUsage
from .lib import ResponseCache, djb2_hash, make_cache_key


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Key derivation
# =============================================================================


class TestCacheKey:
    """Tests for make_cache_key."""

    @pytest.mark.unit
    def test_deterministic(self):
        """Same inputs always produce the same key."""
        first = make_cache_key("p1", "Hello", "Be brief", 0.7, 100)
        second = make_cache_key("p1", "Hello", "Be brief", 0.7, 100)
        assert first == second

    @pytest.mark.unit
    def test_sensitive_to_every_field(self):
        """Changing any single field changes the key."""
        base = make_cache_key("p1", "Hello", "Be brief", 0.7, 100)
        assert make_cache_key("p2", "Hello", "Be brief", 0.7, 100) != base
        assert make_cache_key("p1", "Hello!", "Be brief", 0.7, 100) != base
        assert make_cache_key("p1", "Hello", "Be long", 0.7, 100) != base
        assert make_cache_key("p1", "Hello", "Be brief", 0.8, 100) != base
        assert make_cache_key("p1", "Hello", "Be brief", 0.7, 101) != base

    @pytest.mark.unit
    def test_missing_system_prompt_equals_empty(self):
        """None and empty system prompts share a key."""
        assert make_cache_key("p1", "Hi", None, 0.7, 50) == make_cache_key(
            "p1", "Hi", "", 0.7, 50
        )

    @pytest.mark.unit
    def test_numeric_normalization(self):
        """Integer and float temperatures with equal value share a key."""
        assert make_cache_key("p1", "Hi", None, 1, 50) == make_cache_key(
            "p1", "Hi", None, 1.0, 50
        )

    @pytest.mark.unit
    def test_djb2_known_values(self):
        """Hash matches the reference DJB2 constants."""
        assert djb2_hash("") == "45h"  # 5381
        assert djb2_hash("a") == "3t3a"  # 177670
        assert djb2_hash("ab") == djb2_hash("ab")
        assert djb2_hash("ab") != djb2_hash("ba")

    @pytest.mark.unit
    def test_key_is_base36(self):
        """Keys only use lowercase base-36 digits."""
        key = make_cache_key("provider", "x" * 500, "sys", 0.2, 4000)
        assert key
        assert all(c in "0123456789abcdefghijklmnopqrstuvwxyz" for c in key)


# =============================================================================
# LRU and TTL behaviour
# =============================================================================


class TestResponseCache:
    """Tests for ResponseCache."""

    @pytest.mark.unit
    def test_get_missing_returns_none(self, clock):
        cache = ResponseCache(clock=clock)
        assert cache.get("nope") is None

    @pytest.mark.unit
    def test_set_then_get(self, clock):
        """Stored entries come back with text, tokens and timestamp."""
        cache = ResponseCache(clock=clock)
        cache.set("k", "hello", TokenUsage(3, 2))
        entry = cache.get("k")
        assert entry is not None
        assert entry.text == "hello"
        assert entry.tokens == TokenUsage(3, 2)
        assert entry.stored_at == clock.now

    @pytest.mark.unit
    def test_lru_eviction_respects_reads(self, clock):
        """Reading k1 protects it; k2 becomes the eviction victim."""
        cache = ResponseCache(max_size=5, clock=clock)
        for i in range(1, 6):
            cache.set(f"k{i}", f"v{i}", TokenUsage())
        assert cache.get("k1") is not None

        cache.set("k6", "v6", TokenUsage())

        assert cache.size == 5
        assert cache.get("k2") is None
        assert cache.get("k1") is not None
        assert cache.get("k6") is not None

    @pytest.mark.unit
    def test_overwrite_does_not_evict(self, clock):
        """Re-setting an existing key keeps the size unchanged."""
        cache = ResponseCache(max_size=2, clock=clock)
        cache.set("a", "1", TokenUsage())
        cache.set("b", "2", TokenUsage())
        cache.set("a", "3", TokenUsage())
        assert cache.size == 2
        assert cache.get("a").text == "3"
        assert cache.get("b") is not None

    @pytest.mark.unit
    def test_size_never_exceeds_max(self, clock):
        cache = ResponseCache(max_size=3, clock=clock)
        for i in range(10):
            cache.set(str(i), "x", TokenUsage())
            assert len(cache) <= 3

    @pytest.mark.unit
    def test_ttl_expiry(self, clock):
        """Entries older than the TTL read as missing and are removed."""
        cache = ResponseCache(ttl=60.0, clock=clock)
        cache.set("k", "v", TokenUsage())
        clock.advance(60.0)
        assert cache.get("k") is not None
        clock.advance(0.5)
        assert cache.get("k") is None
        assert cache.size == 0

    @pytest.mark.unit
    def test_has_does_not_change_order(self, clock):
        """has() checks liveness without refreshing recency."""
        cache = ResponseCache(max_size=2, clock=clock)
        cache.set("a", "1", TokenUsage())
        cache.set("b", "2", TokenUsage())
        assert cache.has("a")
        cache.set("c", "3", TokenUsage())
        assert not cache.has("a")
        assert cache.has("b")

    @pytest.mark.unit
    def test_has_respects_expiry(self, clock):
        cache = ResponseCache(ttl=10.0, clock=clock)
        cache.set("k", "v", TokenUsage())
        clock.advance(11.0)
        assert not cache.has("k")

    @pytest.mark.unit
    def test_purge_expired_counts(self, clock):
        """Only expired entries are purged and counted."""
        cache = ResponseCache(ttl=10.0, clock=clock)
        cache.set("old1", "v", TokenUsage())
        cache.set("old2", "v", TokenUsage())
        clock.advance(8.0)
        cache.set("fresh", "v", TokenUsage())
        clock.advance(5.0)

        assert cache.purge_expired() == 2
        assert cache.size == 1
        assert cache.has("fresh")
        assert cache.purge_expired() == 0

    @pytest.mark.unit
    def test_delete_and_clear(self, clock):
        cache = ResponseCache(clock=clock)
        cache.set("a", "1", TokenUsage())
        cache.set("b", "2", TokenUsage())
        assert cache.delete("a")
        assert not cache.delete("a")
        cache.clear()
        assert cache.size == 0

    @pytest.mark.unit
    def test_rejects_empty_capacity(self):
        with pytest.raises(ValueError, match="max_size"):
            ResponseCache(max_size=0)
