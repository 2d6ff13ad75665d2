"""Tests for the TTL parse cache."""
from leadparser.core.models import ParseResult
from leadparser.processing.cache import ParseCache, cache_key


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_cache_key_is_deterministic_and_length_aware():
    assert cache_key("abc") == cache_key("abc")
    assert cache_key("abc") != cache_key("abcd")


def test_get_returns_copy_until_ttl_expires():
    clock = FakeClock()
    cache = ParseCache(ttl_seconds=60, clock=clock)
    stored = ParseResult(format_detected="SPREADSHEET_CSV", confidence=90)
    cache.set("data", stored)

    first = cache.get("data")
    first.warnings.append("mutated")

    assert cache.get("data").warnings == []
    assert cache.get("data") is not stored
    clock.now += 61
    assert cache.get("data") is None


def test_expired_entries_are_evicted_on_write():
    clock = FakeClock()
    cache = ParseCache(ttl_seconds=60, clock=clock)
    cache.set("old", ParseResult())
    clock.now += 120

    cache.set("new", ParseResult())

    assert len(cache) == 1
    assert cache.get("new") is not None


def test_clear_empties_cache():
    cache = ParseCache()
    cache.set("data", ParseResult())

    cache.clear()

    assert len(cache) == 0
