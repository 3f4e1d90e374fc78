import pytest

from app.core.images.cache import MemoryCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = MemoryCache(ttl_seconds=900, clock=clock)
    cache.set("a", 1)

    clock.now = 899
    assert cache.get("a") == 1

    clock.now = 900
    assert cache.get("a") is None
    assert len(cache) == 0


def test_least_recently_used_is_evicted():
    cache = MemoryCache(max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")  # "b" is now the oldest
    cache.set("c", 3)

    assert cache.get("a") == 1
    assert cache.get("b") is None
    assert cache.get("c") == 3


def test_delete_and_clear():
    cache = MemoryCache()
    cache.set("a", 1)
    cache.set("b", 2)

    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None

    cache.clear()
    assert len(cache) == 0


def test_max_entries_must_be_positive():
    with pytest.raises(ValueError):
        MemoryCache(max_entries=0)
