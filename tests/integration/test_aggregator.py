"""Integration tests for YieldAggregator with canned adapters."""

import asyncio
from unittest.mock import MagicMock

import pytest

from metis_yield.errors import AggregationError
from metis_yield.models import HerculesPool, NetswapPair, ProtocolCategory
from metis_yield.services.aggregator import YieldAggregator


def _aggregator(settings, adapters):
    return YieldAggregator(MagicMock(), settings, adapters=adapters)


class TestFanOut:
    """Adapter fan-out, isolation and merge order."""

    @pytest.fixture
    def adapters(self, static_adapter, settings, hercules_pools, aave_reserves, netswap_pairs, enki_distributions):
        return [
            static_adapter("Hercules", hercules_pools, settings=settings),
            static_adapter("AAVE", aave_reserves, settings=settings),
            static_adapter("Netswap", netswap_pairs, settings=settings),
            static_adapter("Enki", enki_distributions, settings=settings),
        ]

    @pytest.mark.asyncio
    async def test_merge_order(self, settings, adapters):
        records = await _aggregator(settings, adapters).get_all_data()
        assert [r.protocol_name for r in records] == ["Hercules", "Hercules", "AAVE", "Netswap", "Enki"]
        assert all(r.protocol != ProtocolCategory.UNKNOWN for r in records)

    @pytest.mark.asyncio
    async def test_cached_after_first_query(self, settings, adapters):
        aggregator = _aggregator(settings, adapters)
        await aggregator.get_all_data()
        await aggregator.get_top_yield()
        await aggregator.get_total_tvl()
        assert all(a.calls == 1 for a in adapters)

    @pytest.mark.asyncio
    async def test_lending_failure_isolated(self, settings, static_adapter, hercules_pools, netswap_pairs, enki_distributions):
        adapters = [
            static_adapter("Hercules", hercules_pools, settings=settings),
            static_adapter("AAVE", error=ConnectionError("rpc unreachable"), settings=settings),
            static_adapter("Netswap", netswap_pairs, settings=settings),
            static_adapter("Enki", enki_distributions, settings=settings),
        ]
        aggregator = _aggregator(settings, adapters)
        records = await aggregator.get_all_data()

        assert [r.protocol_name for r in records] == ["Hercules", "Hercules", "Netswap", "Enki"]
        status = aggregator.status()
        assert status.failed_adapters == ["AAVE"]
        assert status.records_by_adapter["Hercules"] == 2

    @pytest.mark.asyncio
    async def test_escaped_adapter_error_isolated(self, settings, static_adapter, exploding_adapter, hercules_pools):
        adapters = [
            static_adapter("Hercules", hercules_pools, settings=settings),
            exploding_adapter("AAVE", settings=settings),
        ]
        records = await _aggregator(settings, adapters).get_all_data()
        assert len(records) == 2

    @pytest.mark.asyncio
    async def test_unknown_category_dropped(self, settings, static_adapter, hercules_pools):
        aggregator = _aggregator(settings, [static_adapter("Hercules", hercules_pools, settings=settings)])
        run_adapter = aggregator._run_adapter

        async def run(adapter):
            records = await run_adapter(adapter)
            return records + [records[0].model_copy(update={"protocol_name": "Uniswap"})]

        aggregator._run_adapter = run
        records = await aggregator.get_all_data()
        assert [r.protocol_name for r in records] == ["Hercules", "Hercules"]

    @pytest.mark.asyncio
    async def test_adapters_run_concurrently(self, settings, static_adapter):
        started = []
        release = asyncio.Event()

        class Slow(static_adapter):
            async def fetch_raw(self):
                started.append(self.protocol_name)
                await release.wait()
                return []

        aggregator = _aggregator(settings, [Slow("Hercules", settings=settings), Slow("AAVE", settings=settings)])
        task = asyncio.create_task(aggregator.get_all_data())
        for _ in range(5):
            await asyncio.sleep(0)
        assert sorted(started) == ["AAVE", "Hercules"]
        release.set()
        assert await task == []


class TestStaleFallback:
    @pytest.mark.asyncio
    async def test_retries_after_all_sources_failed(self, settings, static_adapter, hercules_pools):
        adapter = static_adapter("Hercules", hercules_pools, error=ConnectionError("down"), settings=settings)
        aggregator = _aggregator(settings, [adapter])
        assert await aggregator.get_all_data() == []

        adapter._error = None
        records = await aggregator.get_all_data()
        assert [r.name for r in records] == ["METIS-USDC", "WETH-METIS"]
        assert adapter.calls == 2

    @pytest.mark.asyncio
    async def test_serves_previous_cache(self, settings, static_adapter, hercules_pools):
        aggregator = _aggregator(settings, [static_adapter("Hercules", hercules_pools, settings=settings)])
        first = await aggregator.get_all_data()

        async def broken():
            raise RuntimeError("merge failed")

        aggregator._fetch_all = broken
        aggregator.invalidate()
        assert await aggregator.get_all_data() == first

    @pytest.mark.asyncio
    async def test_propagates_without_cache(self, settings):
        aggregator = _aggregator(settings, [])

        async def broken():
            raise RuntimeError("merge failed")

        aggregator._fetch_all = broken
        with pytest.raises(AggregationError):
            await aggregator.get_all_data()


class TestQueries:
    @pytest.fixture
    def dex_aggregator(self, settings, static_adapter):
        pools = [
            HerculesPool(address="0xh1", name="METIS-USDC", apy=5.0, totalApr=4.9, tvl="1000000"),
            HerculesPool(address="0xh2", name="WETH-USDC", apy=20.0, totalApr=18.0, tvl="500000"),
            HerculesPool(address="0xh3", name="METIS-WETH", apy=20.0, totalApr=18.5, tvl="0"),
            HerculesPool(address="0xh4", name="m.USDT-USDC", apy=1.0, totalApr=1.0, tvl="0"),
        ]
        return _aggregator(settings, [static_adapter("Hercules", pools, settings=settings)])

    @pytest.mark.asyncio
    async def test_top_yield_stable(self, dex_aggregator):
        top = await dex_aggregator.get_top_yield(3)
        assert [r.apy for r in top] == [20.0, 20.0, 5.0]
        assert [r.pool_address for r in top] == ["0xh2", "0xh3", "0xh1"]

    @pytest.mark.asyncio
    async def test_top_yield_default_and_zero_limit(self, dex_aggregator):
        assert len(await dex_aggregator.get_top_yield()) == 4
        assert await dex_aggregator.get_top_yield(0) == []

    @pytest.mark.asyncio
    async def test_top_yield_does_not_reorder_cache(self, dex_aggregator):
        await dex_aggregator.get_top_yield(2)
        records = await dex_aggregator.get_all_data()
        assert [r.pool_address for r in records] == ["0xh1", "0xh2", "0xh3", "0xh4"]

    @pytest.mark.asyncio
    async def test_top_yield_ranks_overflowing_apr_first(self, settings, static_adapter):
        pairs = [
            NetswapPair(id="0xn1", name="A-B", symbol="A/B", reserveUSD=5000.0, apr=12.0),
            NetswapPair(id="0xn2", name="C-D", symbol="C/D", reserveUSD=5000.0, apr=1e7),
        ]
        aggregator = _aggregator(settings, [static_adapter("Netswap", pairs, settings=settings)])
        top = await aggregator.get_top_yield(1)
        assert top[0].pool_address == "0xn2"

    @pytest.mark.asyncio
    async def test_by_token(self, dex_aggregator):
        records = await dex_aggregator.get_data_by_token("weth")
        assert [r.name for r in records] == ["WETH-USDC", "METIS-WETH"]
        assert await dex_aggregator.get_data_by_token("ARB") == []

    @pytest.mark.asyncio
    async def test_by_protocol_case_insensitive(self, settings, static_adapter, hercules_pools, aave_reserves):
        aggregator = _aggregator(
            settings,
            [
                static_adapter("Hercules", hercules_pools, settings=settings),
                static_adapter("AAVE", aave_reserves, settings=settings),
            ],
        )
        upper = await aggregator.get_data_by_protocol("AAVE")
        lower = await aggregator.get_data_by_protocol("aave")
        assert upper == lower
        assert len(upper) == 1
        assert await aggregator.get_data_by_protocol("aav") == []

    @pytest.mark.asyncio
    async def test_total_tvl(self, settings, static_adapter, aave_reserves):
        pools = [
            HerculesPool(address="0x1", name="A-B", tvl="1000000"),
            HerculesPool(address="0x2", name="C-D", tvl="$500.0K"),
        ]
        aggregator = _aggregator(
            settings,
            [
                static_adapter("Hercules", pools, settings=settings),
                static_adapter("AAVE", aave_reserves, settings=settings),
            ],
        )
        summary = await aggregator.get_total_tvl()
        assert summary.by_protocol == {"Hercules": "$1.50M", "AAVE": "$2.50B"}
        assert summary.total_tvl == "$2.50B"
        assert summary.model_dump(by_alias=True) == {
            "totalTvl": "$2.50B",
            "byProtocol": {"Hercules": "$1.50M", "AAVE": "$2.50B"},
        }

    @pytest.mark.asyncio
    async def test_total_tvl_empty(self, settings):
        summary = await _aggregator(settings, []).get_total_tvl()
        assert summary.total_tvl == "$0.00"
        assert summary.by_protocol == {}
