"""
Test that concurrent identical requests share one fetch.
"""
from __future__ import annotations

import asyncio

import pytest


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_fetch(cache):
    """
    Five callers ask for the same key while the fetch is still running:
    the fetch function runs once and everybody gets the same object.
    """
    release = asyncio.Event()
    calls = 0

    async def fetch():
        nonlocal calls
        calls += 1
        await release.wait()
        return ["movie-1", "movie-2"]

    waiters = [asyncio.create_task(cache.get_or_fetch("mood:u1:", fetch)) for _ in range(5)]
    await asyncio.sleep(0)
    assert cache.stats()["in_flight"] == ["mood:u1:"]

    release.set()
    results = await asyncio.gather(*waiters)

    assert calls == 1
    assert all(r is results[0] for r in results)
    assert cache.metrics.count("dedup") == 4
    assert cache.metrics.count("fetch_started") == 1
    assert cache.get("mood:u1:") == ["movie-1", "movie-2"]


@pytest.mark.asyncio
async def test_different_keys_fetch_independently(cache):
    calls: list[str] = []

    async def fetch_for(name):
        calls.append(name)
        await asyncio.sleep(0)
        return name

    results = await asyncio.gather(
        cache.get_or_fetch("a", lambda: fetch_for("a")),
        cache.get_or_fetch("b", lambda: fetch_for("b")),
        cache.get_or_fetch("a", lambda: fetch_for("a")),
    )

    assert results == ["a", "b", "a"]
    assert sorted(calls) == ["a", "b"]


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_and_is_not_cached(cache):
    release = asyncio.Event()
    calls = 0

    async def failing():
        nonlocal calls
        calls += 1
        await release.wait()
        raise ConnectionError("rpc unavailable")

    waiters = [asyncio.create_task(cache.get_or_fetch("k", failing)) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert calls == 1
    assert all(isinstance(r, ConnectionError) for r in results)
    assert cache.stats() == {"size": 0, "keys": [], "in_flight": []}

    async def ok():
        return "fresh"

    assert await cache.get_or_fetch("k", ok) == "fresh"


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_shared_fetch(cache):
    release = asyncio.Event()

    async def fetch():
        await release.wait()
        return 42

    impatient = asyncio.create_task(cache.get_or_fetch("k", fetch))
    patient = asyncio.create_task(cache.get_or_fetch("k", fetch))
    await asyncio.sleep(0)

    impatient.cancel()
    with pytest.raises(asyncio.CancelledError):
        await impatient

    release.set()
    assert await patient == 42
    assert cache.get("k") == 42


@pytest.mark.asyncio
async def test_fetch_outlives_all_callers_and_still_caches(cache):
    release = asyncio.Event()

    async def fetch():
        await release.wait()
        return "late"

    caller = asyncio.create_task(cache.get_or_fetch("k", fetch))
    await asyncio.sleep(0)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    release.set()
    for _ in range(5):
        await asyncio.sleep(0)

    assert cache.get("k") == "late"


@pytest.mark.asyncio
async def test_invalidate_during_fetch_drops_result(cache):
    """
    A mutation while the fetch runs: awaiters still get the value,
    but it is not stored and the next caller fetches again.
    """
    release = asyncio.Event()
    calls = 0

    async def fetch():
        nonlocal calls
        calls += 1
        await release.wait()
        return f"v{calls}"

    waiter = asyncio.create_task(cache.get_or_fetch("mood:u1:", fetch))
    await asyncio.sleep(0)

    cache.invalidate_user("u1")
    assert cache.stats()["in_flight"] == []

    release.set()
    assert await waiter == "v1"
    assert cache.get("mood:u1:") is None

    assert await cache.get_or_fetch("mood:u1:", fetch) == "v2"
    assert calls == 2
