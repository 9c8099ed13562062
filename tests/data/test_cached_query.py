from __future__ import annotations

import asyncio
import gc

import pytest

from pwacache import CachedQuery, DataCache, IdentityScope
from pwacache.data import RequestCoalescer


def run_async(coro):
    return asyncio.run(coro)


class _Clock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _CountingFetcher:
    def __init__(self, *values) -> None:
        self._values = list(values)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        return self._values[min(self.calls, len(self._values)) - 1]


def test_orders_scenario_serves_cache_until_ttl_then_refetches():
    clock = _Clock(0.0)
    cache = DataCache(clock=clock)
    query = CachedQuery(cache)
    fetcher = _CountingFetcher(["order-a"], ["order-a", "order-b"])

    async def scenario() -> None:
        first = await query.fetch_result("orders:user-1", fetcher, ttl_s=5.0)
        assert first.data == ["order-a"]
        assert first.from_cache is False
        assert fetcher.calls == 1

        clock.now = 4.0
        second = await query.fetch_result("orders:user-1", fetcher, ttl_s=5.0)
        assert second.data == ["order-a"]
        assert second.from_cache is True
        assert fetcher.calls == 1

        clock.now = 6.0
        third = await query.fetch_result("orders:user-1", fetcher, ttl_s=5.0)
        assert third.from_cache is False
        assert third.data == ["order-a", "order-b"]
        assert fetcher.calls == 2

    run_async(scenario())
    assert cache.get("orders:user-1") == ["order-a", "order-b"]


def test_failed_fetch_propagates_original_error_and_caches_nothing():
    cache = DataCache(clock=_Clock())
    query = CachedQuery(cache)
    boom = ValueError("boom")

    async def failing():
        raise boom

    async def scenario() -> None:
        with pytest.raises(ValueError) as info:
            await query.fetch("stores:1", failing)
        assert info.value is boom

    run_async(scenario())
    assert cache.lookup("stores:1") is None
    assert cache.keys() == []


def test_failed_forced_refresh_keeps_previous_entry():
    cache = DataCache(clock=_Clock())
    cache.set("stores:1", "old")
    query = CachedQuery(cache)

    async def failing():
        raise RuntimeError("backend down")

    async def scenario() -> None:
        with pytest.raises(RuntimeError, match="backend down"):
            await query.fetch("stores:1", failing, force_refresh=True)

    run_async(scenario())
    assert cache.get("stores:1") == "old"


def test_force_refresh_skips_read_but_writes_result():
    cache = DataCache(clock=_Clock())
    cache.set("profile:7", {"name": "old"})
    query = CachedQuery(cache)
    fetcher = _CountingFetcher({"name": "new"})

    async def scenario():
        return await query.fetch_result("profile:7", fetcher, force_refresh=True)

    result = run_async(scenario())
    assert result.from_cache is False
    assert result.data == {"name": "new"}
    assert fetcher.calls == 1
    assert cache.get("profile:7") == {"name": "new"}


def test_concurrent_fetches_for_same_key_share_one_call():
    cache = DataCache(clock=_Clock())
    query = CachedQuery(cache)
    calls = 0

    async def slow():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return "catalog"

    async def scenario():
        return await asyncio.gather(
            query.fetch("products:store-3", slow),
            query.fetch("products:store-3", slow),
        )

    assert run_async(scenario()) == ["catalog", "catalog"]
    assert calls == 1


def test_coalesced_failure_reaches_every_waiter():
    cache = DataCache(clock=_Clock())
    query = CachedQuery(cache)

    async def slow_fail():
        await asyncio.sleep(0.01)
        raise ConnectionError("offline")

    async def scenario():
        return await asyncio.gather(
            query.fetch("orders:user-9", slow_fail),
            query.fetch("orders:user-9", slow_fail),
            return_exceptions=True,
        )

    results = run_async(scenario())
    assert all(isinstance(item, ConnectionError) for item in results)
    assert cache.lookup("orders:user-9") is None


def test_without_coalescing_each_call_fetches():
    cache = DataCache(clock=_Clock())
    query = CachedQuery(cache, coalesce=False)
    fetcher = _CountingFetcher("a", "b")

    async def scenario():
        return await asyncio.gather(
            query.fetch("k", fetcher),
            query.fetch("k", fetcher),
        )

    run_async(scenario())
    assert fetcher.calls == 2


def test_invalidate_forces_next_fetch():
    cache = DataCache(clock=_Clock())
    query = CachedQuery(cache)
    fetcher = _CountingFetcher(1, 2)

    async def scenario():
        await query.fetch("cart:user-1", fetcher)
        assert query.invalidate("cart:user-1") is True
        return await query.fetch("cart:user-1", fetcher)

    assert run_async(scenario()) == 2
    assert fetcher.calls == 2


def test_identity_scope_clears_on_identity_change_only():
    cache = DataCache(clock=_Clock())
    scope = IdentityScope(cache)

    scope.switch(("user-1", "customer"))
    cache.set("orders:user-1", [1])

    assert scope.switch(("user-1", "customer")) is False
    assert cache.get("orders:user-1") == [1]

    assert scope.switch(("user-1", "store")) is True
    assert cache.get("orders:user-1") is None

    cache.set("dashboard:store-1", {"sales": 3})
    scope.sign_out()
    assert len(cache) == 0
    assert scope.identity is None


def test_coalescer_forgets_finished_keys():
    coalescer = RequestCoalescer()

    async def load():
        await asyncio.sleep(0.01)
        return "done"

    async def scenario():
        first = asyncio.ensure_future(coalescer.run("stores", load))
        await asyncio.sleep(0)
        in_flight = coalescer.in_flight
        result = await first
        return in_flight, result, coalescer.in_flight

    assert run_async(scenario()) == (1, "done", 0)


def test_fetch_in_flight_across_sign_out_is_not_stored():
    cache = DataCache(clock=_Clock())
    scope = IdentityScope(cache)
    query = CachedQuery(cache)

    async def scenario():
        release = asyncio.Event()

        async def user_one_orders():
            await release.wait()
            return "user-1 orders"

        scope.switch("user-1")
        pending = asyncio.ensure_future(query.fetch("dashboard:orders", user_one_orders))
        await asyncio.sleep(0)
        scope.sign_out()
        scope.switch("user-2")
        release.set()
        late = await pending
        return late, cache.lookup("dashboard:orders")

    late, entry = run_async(scenario())
    assert late == "user-1 orders"
    assert entry is None


def test_next_identity_does_not_join_previous_in_flight_fetch():
    cache = DataCache(clock=_Clock())
    scope = IdentityScope(cache)
    query = CachedQuery(cache)

    async def scenario():
        release = asyncio.Event()

        async def user_one_orders():
            await release.wait()
            return "user-1 orders"

        async def user_two_orders():
            return "user-2 orders"

        scope.switch("user-1")
        pending = asyncio.ensure_future(query.fetch("dashboard:orders", user_one_orders))
        await asyncio.sleep(0)
        scope.sign_out()
        scope.switch("user-2")
        fresh = await query.fetch_result("dashboard:orders", user_two_orders)
        release.set()
        await pending
        return fresh, cache.get("dashboard:orders")

    fresh, stored = run_async(scenario())
    assert fresh.data == "user-2 orders"
    assert fresh.from_cache is False
    assert stored == "user-2 orders"


def test_clear_bumps_generation():
    cache = DataCache(clock=_Clock())
    start = cache.generation
    cache.set("a", 1)
    assert cache.generation == start
    cache.clear()
    assert cache.generation == start + 1
    cache.dispose()
    assert cache.generation == start + 2


def test_coalescer_retrieves_failure_when_every_waiter_left():
    reported: list[dict] = []

    async def scenario() -> int:
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(lambda _loop, context: reported.append(context))
        coalescer = RequestCoalescer()

        async def fail():
            await asyncio.sleep(0.01)
            raise ConnectionError("offline")

        waiter = asyncio.ensure_future(coalescer.run("stores", fail))
        await asyncio.sleep(0)
        waiter.cancel()
        await asyncio.gather(waiter, return_exceptions=True)
        await asyncio.sleep(0.03)
        gc.collect()
        return coalescer.in_flight

    assert run_async(scenario()) == 0
    assert not [
        context
        for context in reported
        if "never retrieved" in str(context.get("message", ""))
    ]
