"""Mapping of protocol-native records onto ``UnifiedYieldRecord``.

All transforms are total: missing numbers become 0, missing strings "".
"""

from __future__ import annotations

import math
from typing import Any

from metis_yield.constants import ENKI_TOKEN_SYMBOL, MAX_APY
from metis_yield.models import (
    AaveReserve,
    EnkiDistribution,
    HerculesPool,
    NetswapPair,
    RawYieldSource,
    UnifiedYieldRecord,
)
from metis_yield.utils.format import apy_from_apr, parse_formatted_amount


def _num(value: Any) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return 0.0
    return out if math.isfinite(out) else 0.0


def _pct(fraction: Any) -> float:
    return _num(fraction) * 100


def _tvl(value: float) -> float:
    return max(0.0, _num(value))


def _compounded(apr: float) -> float:
    return _num(min(apy_from_apr(apr), MAX_APY))


def transform_hercules_pool(pool: HerculesPool) -> UnifiedYieldRecord:
    return UnifiedYieldRecord(
        protocolName="Hercules",
        name=pool.name,
        poolAddress=pool.address,
        tvl=_tvl(parse_formatted_amount(pool.tvl or "0")),
        apy=_num(pool.apy),
        apr=_num(pool.total_apr),
    )


def transform_aave_reserve(reserve: AaveReserve) -> UnifiedYieldRecord:
    return UnifiedYieldRecord(
        protocolName="AAVE",
        name=reserve.name,
        symbol=reserve.symbol,
        apy=_pct(reserve.supply_apy),
        borrowIncentiveApr=_pct(reserve.incentive_apr),
        tvl=_tvl(parse_formatted_amount(reserve.total_liquidity_usd)),
        borrow=parse_formatted_amount(reserve.total_debt_usd),
        borrowApy=_pct(reserve.variable_borrow_apy),
        stableBorrowApy=_pct(reserve.stable_borrow_apy),
    )


def transform_netswap_pair(pair: NetswapPair) -> UnifiedYieldRecord:
    apr = _num(pair.apr)
    return UnifiedYieldRecord(
        protocolName="Netswap",
        name=pair.name,
        poolAddress=pair.id,
        apr=apr,
        apy=_compounded(apr),
        tvl=_tvl(pair.reserve_usd),
    )


def transform_enki_distribution(dist: EnkiDistribution) -> UnifiedYieldRecord:
    apr = _num(dist.apr)
    return UnifiedYieldRecord(
        protocolName="Enki",
        name=dist.timestamp,
        symbol=ENKI_TOKEN_SYMBOL,
        tvl=_tvl(dist.tvl),
        apr=apr,
        apy=_compounded(apr),
    )


_TRANSFORMS = {
    "hercules": transform_hercules_pool,
    "aave": transform_aave_reserve,
    "netswap": transform_netswap_pair,
    "enki": transform_enki_distribution,
}


def normalize(raw: RawYieldSource) -> UnifiedYieldRecord:
    return _TRANSFORMS[raw.kind](raw)
