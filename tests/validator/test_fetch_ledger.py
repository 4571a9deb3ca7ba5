import asyncio

import pytest

from best_image.validator.fetch_ledger import FetchLedger


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_concurrent_fetches_share_one_call():
    ledger = FetchLedger(ttl_seconds=10)
    calls = []
    release = asyncio.Event()

    async def factory():
        calls.append(1)
        await release.wait()
        return "result"

    waiters = [asyncio.ensure_future(ledger.fetch("http://a.com/x.jpg", factory)) for _ in range(3)]
    await asyncio.sleep(0)
    assert ledger.is_in_flight("http://a.com/x.jpg")
    assert ledger.in_flight_count() == 1

    release.set()
    results = await asyncio.gather(*waiters)

    assert results == ["result", "result", "result"]
    assert len(calls) == 1
    assert ledger.in_flight_count() == 0


@pytest.mark.asyncio
async def test_completed_result_is_reused_until_expiry():
    clock = FakeClock()
    ledger = FetchLedger(ttl_seconds=10, clock=clock)
    calls = []

    async def factory():
        calls.append(1)
        return len(calls)

    # 1. First call fetches
    assert await ledger.fetch("key", factory) == 1

    # 2. Within the ttl the finished result is reused
    clock.now += 5
    assert await ledger.fetch("key", factory) == 1

    # 3. After the ttl a new fetch starts
    clock.now += 10
    assert await ledger.fetch("key", factory) == 2
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_failure_is_shared_by_every_waiter():
    ledger = FetchLedger()
    calls = []

    async def factory():
        calls.append(1)
        await asyncio.sleep(0.01)
        raise ValueError("broken image")

    results = await asyncio.gather(
        ledger.fetch("key", factory),
        ledger.fetch("key", factory),
        return_exceptions=True,
    )

    assert len(calls) == 1
    assert all(isinstance(r, ValueError) for r in results)

    # the failure is cached like a success
    with pytest.raises(ValueError):
        await ledger.fetch("key", factory)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_keys_are_independent():
    ledger = FetchLedger()

    async def make(value):
        return value

    assert await ledger.fetch("a", lambda: make("A")) == "A"
    assert await ledger.fetch("b", lambda: make("B")) == "B"

    ledger.clear()
    assert await ledger.fetch("a", lambda: make("A2")) == "A2"


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_fetch():
    ledger = FetchLedger()
    release = asyncio.Event()

    async def factory():
        await release.wait()
        return "done"

    first = asyncio.ensure_future(ledger.fetch("key", factory))
    second = asyncio.ensure_future(ledger.fetch("key", factory))
    await asyncio.sleep(0)

    first.cancel()
    release.set()

    assert await second == "done"
    assert first.cancelled()


@pytest.mark.asyncio
async def test_expired_results_are_dropped():
    clock = FakeClock()
    ledger = FetchLedger(ttl_seconds=10, clock=clock)

    async def make(value):
        return value

    # 1. Fill the cache with many distinct keys
    for i in range(100):
        await ledger.fetch(f"http://a.com/{i}.jpg", lambda i=i: make(i))
    assert ledger.cached_count() == 100

    # 2. Half the ttl later nothing has expired
    clock.now += 5
    await ledger.fetch("http://a.com/recent.jpg", lambda: make("recent"))
    assert ledger.cached_count() == 101

    # 3. Any later fetch drops every expired entry, not only its own key
    clock.now += 900
    await ledger.fetch("http://a.com/other.jpg", lambda: make("other"))
    assert ledger.cached_count() == 1
