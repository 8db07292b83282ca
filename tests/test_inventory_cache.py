"""
test_inventory_cache.py — Tests for stockledger/cache/inventory_cache.py

Time is driven by an injected clock, so expiry is deterministic.

Called by: pytest
Depends on: stockledger.cache.inventory_cache
"""

import pytest

from stockledger.cache.inventory_cache import ReconciliationCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def cache(clock):
    return ReconciliationCache(default_ttl=300, clock=clock)


def test_get_returns_cached_data_before_expiry(cache, clock):
    cache.set("raw", {"K1": {}})
    clock.advance(299)
    assert cache.get("raw") == {"K1": {}}


def test_read_past_expiry_is_a_miss_and_evicts(cache, clock):
    cache.set("raw", [1, 2, 3])
    clock.advance(301)
    assert cache.get("raw") is None
    assert cache.stats() == []


def test_has_respects_expiry_without_evicting(cache, clock):
    cache.set("raw", [1])
    assert cache.has("raw")
    clock.advance(400)
    assert not cache.has("raw")


def test_custom_ttl_overrides_default(cache, clock):
    cache.set("short", [1], ttl=10)
    clock.advance(11)
    assert cache.get("short") is None


def test_set_replaces_entry_and_resets_ttl(cache, clock):
    cache.set("raw", [1])
    clock.advance(200)
    cache.set("raw", [1, 2])
    clock.advance(200)
    assert cache.get("raw") == [1, 2]


def test_clear_single_key_and_all(cache):
    cache.set("a", [1])
    cache.set("b", [2])
    cache.clear("a")
    assert cache.get("a") is None
    assert cache.get("b") == [2]
    cache.clear()
    assert cache.get("b") is None


def test_cleanup_expired_counts_removed(cache, clock):
    cache.set("old", [1], ttl=5)
    cache.set("fresh", [1], ttl=500)
    clock.advance(10)
    assert cache.cleanup_expired() == 1
    assert [e["key"] for e in cache.stats()] == ["fresh"]


def test_stats_reports_size_age_and_remaining_ttl(cache, clock):
    cache.set("raw", {"K1": {}, "K2": {}})
    clock.advance(60)
    (entry,) = cache.stats()
    assert entry == {"key": "raw", "item_count": 2, "age_seconds": 60.0, "ttl_seconds": 240.0}
