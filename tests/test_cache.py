import asyncio
import threading
import sys
from pathlib import Path

SRC_DIR = str((Path(__file__).resolve().parents[1] / "src").resolve())
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from ro_subtitles.cache import SingleFlight, TTLCache, make_cache_key  # noqa: E402


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_cache_key_canonicalization():
    assert make_cache_key("123") == "srt:123::"
    assert make_cache_key("123", 1, 2) == "srt:123:1:2"
    assert make_cache_key(123, "01", "02") == make_cache_key("123", 1, 2)
    assert make_cache_key("123", 1, 1) != make_cache_key("123", 2, 1)


def test_get_put_roundtrip():
    cache = TTLCache(default_ttl=None)
    assert cache.get("k") is None
    assert cache.put("k", "text") == "text"
    assert cache.get("k") == "text"
    assert "k" in cache


def test_put_keeps_first_live_value():
    cache = TTLCache(default_ttl=None)
    cache.put("k", "first")
    assert cache.put("k", "second") == "first"
    assert cache.get("k") == "first"
    cache.set("k", "forced")
    assert cache.get("k") == "forced"


def test_entries_expire(monkeypatch):
    cache = TTLCache(default_ttl=10)
    clock = _Clock()
    monkeypatch.setattr(cache, "_now", clock)
    cache.put("k", "v")
    clock.now += 5
    assert cache.get("k") == "v"
    clock.now += 6
    assert cache.get("k") is None
    assert cache.put("k", "fresh") == "fresh"


def test_no_ttl_means_no_expiry(monkeypatch):
    cache = TTLCache(default_ttl=None)
    clock = _Clock()
    monkeypatch.setattr(cache, "_now", clock)
    cache.put("k", "v")
    clock.now += 10 ** 9
    assert cache.get("k") == "v"


def test_max_size_drops_oldest():
    cache = TTLCache(default_ttl=None, max_size=2)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.put("c", 3)
    assert len(cache) == 2
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_max_size_prefers_expired_entries(monkeypatch):
    cache = TTLCache(default_ttl=100, max_size=2)
    clock = _Clock()
    monkeypatch.setattr(cache, "_now", clock)
    cache.put("old", 1)
    cache.put("short", 2, ttl=1)
    clock.now += 5
    cache.put("new", 3)
    assert cache.get("old") == 1
    assert cache.get("new") == 3
    assert cache.get("short") is None


def test_delete_and_clear():
    cache = TTLCache()
    cache.put("a", 1)
    cache.put("b", 2)
    cache.delete("a")
    assert cache.get("a") is None
    cache.clear()
    assert len(cache) == 0


def test_single_flight_runs_producer_once():
    flight = SingleFlight()
    store = {}
    calls = []

    async def producer():
        calls.append(1)
        await asyncio.sleep(0.05)
        store["k"] = "value"
        return "value"

    async def main():
        return await asyncio.gather(*(flight.run("k", lambda: store.get("k"), producer) for _ in range(5)))

    results = asyncio.run(main())
    assert results == ["value"] * 5
    assert len(calls) == 1
    assert len(flight) == 0


def test_single_flight_shares_failure_with_waiters():
    flight = SingleFlight()
    calls = []

    async def producer():
        calls.append(1)
        await asyncio.sleep(0.05)
        raise RuntimeError("upstream down")

    async def main():
        return await asyncio.gather(
            *(flight.run("k", lambda: None, producer) for _ in range(3)),
            return_exceptions=True,
        )

    results = asyncio.run(main())
    assert len(calls) == 1
    assert all(isinstance(r, RuntimeError) for r in results)
    assert len(flight) == 0


def test_single_flight_shares_miss_result():
    flight = SingleFlight()
    calls = []

    async def producer():
        calls.append(1)
        await asyncio.sleep(0.05)
        return None

    async def main():
        return await asyncio.gather(*(flight.run("k", lambda: None, producer) for _ in range(4)))

    assert asyncio.run(main()) == [None] * 4
    assert len(calls) == 1


def test_single_flight_wakes_waiter_on_other_event_loop():
    flight = SingleFlight()
    calls = []
    results = {}

    async def producer():
        calls.append(1)
        await asyncio.sleep(0.3)
        return "value"

    def worker(name, delay):
        async def run():
            await asyncio.sleep(delay)
            return await flight.run("k", lambda: None, producer)

        results[name] = asyncio.run(run())

    threads = [
        threading.Thread(target=worker, args=("first", 0.0)),
        threading.Thread(target=worker, args=("second", 0.05)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)

    assert [t.is_alive() for t in threads] == [False, False]
    assert results == {"first": "value", "second": "value"}
    assert len(calls) == 1


def test_cancelled_waiter_does_not_break_owner():
    flight = SingleFlight()

    async def producer():
        await asyncio.sleep(0.1)
        return "value"

    async def main():
        owner = asyncio.ensure_future(flight.run("k", lambda: None, producer))
        await asyncio.sleep(0.01)
        waiter = asyncio.ensure_future(flight.run("k", lambda: None, producer))
        await asyncio.sleep(0.01)
        waiter.cancel()
        late = asyncio.ensure_future(flight.run("k", lambda: None, producer))
        return await owner, await late, waiter.cancelled()

    assert asyncio.run(main()) == ("value", "value", True)
