from solwatch_service.market_data import ResponseCache, build_cache_key
from utils.solana_fakes import FakeClock


def test_cache_returns_value_within_ttl():
    clock = FakeClock(100.0)
    cache = ResponseCache(clock=clock)
    cache.set("price:abc", {"value": 1.5}, ttl_seconds=15)

    clock.advance(15)

    assert cache.get("price:abc") == {"value": 1.5}


def test_cache_evicts_entry_after_ttl():
    clock = FakeClock(100.0)
    cache = ResponseCache(clock=clock)
    cache.set("price:abc", {"value": 1.5}, ttl_seconds=15)

    clock.advance(15.01)

    assert cache.get("price:abc") is None
    assert cache.size() == 0


def test_cache_ttl_is_per_entry():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("short", 1, ttl_seconds=15)
    cache.set("long", 2, ttl_seconds=120)

    clock.advance(60)

    assert cache.get("short") is None
    assert cache.get("long") == 2


def test_cache_clear_and_snapshot():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("a", [1, 2], ttl_seconds=30)
    cache.set("b", {"x": 1}, ttl_seconds=5)
    clock.advance(10)

    snapshot = {entry.key: entry for entry in cache.snapshot()}

    assert set(snapshot) == {"a"}
    assert snapshot["a"].age_seconds == 10
    assert snapshot["a"].value_type == "list"
    cache.clear()
    assert len(cache) == 0


def test_cache_key_ignores_parameter_order():
    first = build_cache_key("/defi/price", {"address": "abc", "include_liquidity": True})
    second = build_cache_key("/defi/price", {"include_liquidity": True, "address": "abc"})

    assert first == second


def test_cache_key_drops_none_parameters():
    assert build_cache_key("/defi/v3/token/meme/list", {"limit": 20, "source": None}) == build_cache_key(
        "/defi/v3/token/meme/list", {"limit": 20}
    )
    assert build_cache_key("/defi/price", {"address": "a"}) != build_cache_key("/defi/price", {"address": "b"})
