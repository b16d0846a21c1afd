from __future__ import annotations

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from metis_yield.clients.base import YieldAdapter
from metis_yield.clients.graphql import graphql_query
from metis_yield.models import AaveReserve

logger = logging.getLogger(__name__)


RESERVES_QUERY = """
query GetReserves($chainIds: [ChainId!]!) {
  markets(request: { chainIds: $chainIds }) {
    name
    reserves {
      underlyingToken { address symbol name decimals }
      usdExchangeRate
      supplyInfo {
        apy { value }
        total { value }
      }
      borrowInfo {
        apy { value }
        total { usd }
        utilizationRate { value }
      }
      isFrozen
      isPaused
    }
  }
}
"""

INCENTIVES_QUERY = """
query GetReserveIncentives($chainIds: [ChainId!]!) {
  markets(request: { chainIds: $chainIds }) {
    reserves {
      underlyingToken { address }
      incentives {
        __typename
        ... on AaveSupplyIncentive { extraSupplyApr { value } }
        ... on MeritSupplyIncentive { extraSupplyApr { value } }
      }
    }
  }
}
"""


def _value(obj: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _dec(value: Any) -> Decimal:
    try:
        return Decimal(str(value)) if value is not None else Decimal(0)
    except InvalidOperation:
        return Decimal(0)


def _reserves(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for market in data.get("markets") or []:
        out.extend(market.get("reserves") or [])
    return out


def parse_incentives(data: Dict[str, Any]) -> Dict[str, str]:
    """Supply incentive APR (fractional string) keyed by lower-cased underlying asset."""
    out: Dict[str, str] = {}
    for reserve in _reserves(data):
        asset = str(_value(reserve, "underlyingToken", "address") or "").lower()
        incentives = reserve.get("incentives") or []
        aprs = [_value(i, "extraSupplyApr", "value") for i in incentives]
        aprs = [a for a in aprs if a is not None]
        if asset and aprs:
            out[asset] = str(aprs[0])
    return out


def parse_reserve(reserve: Dict[str, Any], incentive_apr: Optional[str] = None) -> AaveReserve:
    token = reserve.get("underlyingToken") or {}
    supplied = _dec(_value(reserve, "supplyInfo", "total", "value"))
    price = _dec(reserve.get("usdExchangeRate"))
    return AaveReserve(
        symbol=str(token.get("symbol") or ""),
        name=str(token.get("name") or ""),
        underlyingAsset=str(token.get("address") or ""),
        supplyAPY=str(_value(reserve, "supplyInfo", "apy", "value") or "0"),
        variableBorrowAPY=str(_value(reserve, "borrowInfo", "apy", "value") or "0"),
        # Stable borrowing is disabled on v3.2+ markets and the API has no stable rate
        stableBorrowAPY="0",
        incentiveAPR=incentive_apr,
        totalLiquidityUSD=str(supplied * price),
        totalDebtUSD=str(_value(reserve, "borrowInfo", "total", "usd") or "0"),
        borrowUsageRatio=str(_value(reserve, "borrowInfo", "utilizationRate", "value") or "0"),
    )


class AaveAdapter(YieldAdapter):
    """Reserves of the AAVE v3 Metis market with supply incentives attached."""

    @property
    def protocol_name(self) -> str:
        return "AAVE"

    async def fetch_reserves(self) -> List[Dict[str, Any]]:
        data = await graphql_query(
            self.http, self.settings.AAVE_API_URL, RESERVES_QUERY, {"chainIds": [self.settings.METIS_CHAIN_ID]}
        )
        return _reserves(data)

    async def fetch_incentives(self) -> Dict[str, str]:
        data = await graphql_query(
            self.http, self.settings.AAVE_API_URL, INCENTIVES_QUERY, {"chainIds": [self.settings.METIS_CHAIN_ID]}
        )
        return parse_incentives(data)

    async def fetch_raw(self) -> List[AaveReserve]:
        # Both views must succeed; a partial reserve list is never returned
        reserves, incentives = await asyncio.gather(self.fetch_reserves(), self.fetch_incentives())
        out: List[AaveReserve] = []
        for reserve in reserves:
            asset = str(_value(reserve, "underlyingToken", "address") or "").lower()
            out.append(parse_reserve(reserve, incentives.get(asset)))
        return out
