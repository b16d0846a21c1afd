"""Pytest configuration and fixtures."""

import json
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock

import httpx
import pytest

from metis_yield.clients.base import YieldAdapter
from metis_yield.config import Settings
from metis_yield.http import HttpClient
from metis_yield.models import (
    AaveReserve,
    EnkiDistribution,
    HerculesPool,
    NetswapPair,
)


class StaticAdapter(YieldAdapter):
    """Adapter returning canned raw records, or failing the way a broken upstream does."""

    def __init__(self, name: str, raw: Optional[List[Any]] = None, error: Optional[Exception] = None, settings=None):
        super().__init__(MagicMock(), settings or Settings())
        self._name = name
        self._raw = raw or []
        self._error = error
        self.calls = 0

    @property
    def protocol_name(self) -> str:
        return self._name

    async def fetch_raw(self):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return list(self._raw)


class ExplodingAdapter(StaticAdapter):
    """Adapter whose failure escapes its own boundary."""

    async def fetch(self):
        self.calls += 1
        raise RuntimeError(f"{self._name} blew up")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        CACHE_MAX_AGE_SECONDS=None,
        NETSWAP_PAGE_SIZE=2,
        HTTP_RETRY_ATTEMPTS=1,
    )


@pytest.fixture
def hercules_pools() -> List[HerculesPool]:
    return [
        HerculesPool(pool="p1", address="0xpool1", name="METIS-USDC", totalApr=20.0, apy=22.1, tvl="$1.00M"),
        HerculesPool(pool="p2", address="0xpool2", name="WETH-METIS", totalApr=5.0, apy=5.1, tvl="$500.0K"),
    ]


@pytest.fixture
def aave_reserves() -> List[AaveReserve]:
    return [
        AaveReserve(
            symbol="m.USDC",
            name="USDC",
            underlyingAsset="0xea32a96608495e54156ae48931a7c20f0dcc1a21",
            supplyAPY="0.0312",
            variableBorrowAPY="0.0456",
            stableBorrowAPY="0",
            incentiveAPR="0.01",
            totalLiquidityUSD="2500000000",
            totalDebtUSD="1200000000",
            borrowUsageRatio="0.48",
        ),
    ]


@pytest.fixture
def netswap_pairs() -> List[NetswapPair]:
    return [
        NetswapPair(
            id="0xpair1",
            name="METIS-WETH",
            symbol="METIS/WETH",
            reserveUSD=250000.0,
            volumeUSD=1e7,
            last24HourVol=50000.0,
            apr=18.25,
        ),
    ]


@pytest.fixture
def enki_distributions() -> List[EnkiDistribution]:
    return [
        EnkiDistribution(id="0xevt1", amount="100", tvl="120000.5", apr=7.3, timestamp="1717000000"),
    ]


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], HttpClient]:
    """Build an HttpClient whose requests are answered by ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> HttpClient:
        return HttpClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def request_json() -> Callable[[httpx.Request], Dict[str, Any]]:
    def _read(request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content or b"{}")

    return _read


@pytest.fixture
def static_adapter():
    return StaticAdapter


@pytest.fixture
def exploding_adapter():
    return ExplodingAdapter
