"""Unit tests for RecordCache."""

import asyncio

import pytest

from metis_yield.models import UnifiedYieldRecord
from metis_yield.services.cache import RecordCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _records(n: int):
    return [UnifiedYieldRecord(protocolName="Hercules", name=f"P{i}", apy=float(i), tvl=1.0) for i in range(n)]


class CountingLoader:
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class TestRecordCache:
    @pytest.mark.asyncio
    async def test_lazy_population_and_reuse(self):
        cache = RecordCache()
        loader = CountingLoader([_records(2)])
        assert not cache.is_populated
        assert cache.last_refresh_at is None

        first = await cache.get(loader)
        second = await cache.get(loader)

        assert len(first) == len(second) == 2
        assert loader.calls == 1
        assert cache.last_refresh_at is not None

    @pytest.mark.asyncio
    async def test_infinite_max_age_never_expires(self):
        clock = FakeClock()
        cache = RecordCache(max_age_seconds=None, clock=clock)
        loader = CountingLoader([_records(1)])
        await cache.get(loader)
        clock.now += 10**9
        await cache.get(loader)
        assert loader.calls == 1

    @pytest.mark.asyncio
    async def test_max_age_expiry(self):
        clock = FakeClock()
        cache = RecordCache(max_age_seconds=60, clock=clock)
        loader = CountingLoader([_records(1), _records(3)])

        assert len(await cache.get(loader)) == 1
        clock.now += 59
        assert len(await cache.get(loader)) == 1
        clock.now += 2
        assert len(await cache.get(loader)) == 3
        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_and_force(self):
        cache = RecordCache()
        loader = CountingLoader([_records(1), _records(2), _records(3)])
        await cache.get(loader)

        cache.invalidate()
        assert not cache.is_fresh()
        assert len(await cache.get(loader)) == 2

        assert len(await cache.get(loader, force=True)) == 3
        assert loader.calls == 3

    @pytest.mark.asyncio
    async def test_stale_records_served_on_failure(self):
        cache = RecordCache()
        loader = CountingLoader([_records(2), RuntimeError("all sources down")])
        await cache.get(loader)
        cache.invalidate()

        records = await cache.get(loader)
        assert len(records) == 2

    @pytest.mark.asyncio
    async def test_failure_without_cache_propagates(self):
        cache = RecordCache()
        loader = CountingLoader([RuntimeError("all sources down")])
        with pytest.raises(RuntimeError):
            await cache.get(loader)
        assert not cache.is_populated

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_population(self):
        cache = RecordCache()
        gate = asyncio.Event()
        calls = 0

        async def loader():
            nonlocal calls
            calls += 1
            await gate.wait()
            return _records(4)

        waiters = [asyncio.create_task(cache.get(loader)) for _ in range(5)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*waiters)

        assert calls == 1
        assert all(len(r) == 4 for r in results)

    @pytest.mark.asyncio
    async def test_empty_result_is_refetched(self):
        cache = RecordCache()
        loader = CountingLoader([[], _records(2)])

        assert await cache.get(loader) == []
        assert not cache.is_fresh()
        assert len(await cache.get(loader)) == 2
        assert loader.calls == 2

    @pytest.mark.asyncio
    async def test_failure_after_empty_result_propagates(self):
        cache = RecordCache()
        loader = CountingLoader([[], RuntimeError("all sources down")])
        await cache.get(loader)
        with pytest.raises(RuntimeError):
            await cache.get(loader)

    @pytest.mark.asyncio
    async def test_clear(self):
        cache = RecordCache()
        await cache.get(CountingLoader([_records(1)]))
        cache.clear()
        assert cache.peek() is None
