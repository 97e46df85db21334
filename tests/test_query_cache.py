from app.console.query_cache import MISSING, QueryCache
from app.console.queries import build_query_key, build_url


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_get_set_and_missing():
    cache = QueryCache()
    assert cache.get((1, "/api/franchises")) is MISSING
    cache.set((1, "/api/franchises"), [{"id": "f1"}])
    assert cache.get((1, "/api/franchises")) == [{"id": "f1"}]


def test_cached_none_is_a_hit():
    cache = QueryCache()
    cache.set((1, "/api/franchisor/settings"), None)
    assert cache.get((1, "/api/franchisor/settings")) is None


def test_entries_stay_fresh_without_stale_time():
    clock = FakeClock()
    cache = QueryCache(clock=clock)
    cache.set((1, "/api/campaigns"), [])
    clock.now += 10_000
    assert cache.get((1, "/api/campaigns")) == []


def test_zero_stale_time_always_refetches():
    clock = FakeClock()
    cache = QueryCache(clock=clock)
    cache.set((1, "/api/franchise-leads"), ["l1"])
    assert cache.get((1, "/api/franchise-leads"), stale_seconds=0) is MISSING


def test_stale_entries_are_refetched():
    clock = FakeClock()
    cache = QueryCache(clock=clock)
    cache.set((1, "/api/campaigns"), ["old"])
    clock.now += 9.9
    assert cache.get((1, "/api/campaigns"), stale_seconds=10) == ["old"]
    clock.now += 0.1
    assert cache.get((1, "/api/campaigns"), stale_seconds=10) is MISSING
    assert len(cache) == 0


def test_invalidate_by_prefix_covers_nested_keys():
    cache = QueryCache()
    cache.set((1, "/api/franchises"), ["list"])
    cache.set((1, "/api/franchises", "f1"), {"id": "f1"})
    cache.set((1, "/api/franchises", "f1", "exchange-accounts"), [])
    cache.set((1, "/api/franchise-plans"), ["plans"])
    cache.set((2, "/api/franchises"), ["other operator"])

    assert cache.invalidate((1, "/api/franchises")) == 3
    assert cache.get((1, "/api/franchise-plans")) == ["plans"]
    assert cache.get((2, "/api/franchises")) == ["other operator"]


def test_invalidate_all_scopes_drops_every_operators_copy():
    cache = QueryCache()
    cache.set((1, "/api/franchise-leads"), ["l1"])
    cache.set(("anon", "/api/franchise-leads"), ["l1"])
    cache.set((2, "/api/franchise-leads", "l1"), {"id": "l1"})
    cache.set((1, "/api/franchise-plans"), ["plans"])
    assert cache.invalidate_all_scopes(("/api/franchise-leads",)) == 3
    assert len(cache) == 1


def test_clear_scope_only_drops_that_operator():
    cache = QueryCache()
    cache.set((1, "/api/a"), 1)
    cache.set((1, "/api/b"), 2)
    cache.set((2, "/api/a"), 3)
    assert cache.clear_scope(1) == 2
    assert len(cache) == 1


def test_size_eviction_drops_least_recently_used():
    cache = QueryCache(max_entries=2)
    cache.set(("a",), 1)
    cache.set(("b",), 2)
    assert cache.get(("a",)) == 1
    cache.set(("c",), 3)
    assert cache.get(("b",)) is MISSING
    assert cache.get(("a",)) == 1
    assert cache.get(("c",)) == 3


def test_query_key_includes_sorted_params():
    assert build_query_key(("/api/tax-summary", "p1")) == ("/api/tax-summary", "p1")
    assert build_query_key(("/api/tax-summary", "p1"), {"year": 2025, "x": None}) == (
        "/api/tax-summary", "p1", (("year", "2025"),),
    )


def test_build_url_joins_segments():
    assert build_url(("/api/franchises", "f1", "exchange-accounts")) == "/api/franchises/f1/exchange-accounts"
    assert build_url(("/api/tax-summary", "p1"), {"year": 2025, "skip": None}) == "/api/tax-summary/p1?year=2025"
