from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List

from metis_yield.clients.base import YieldAdapter
from metis_yield.clients.graphql import graphql_query
from metis_yield.constants import DAYS_PER_YEAR, SECONDS_PER_DAY
from metis_yield.models import NetswapPair

logger = logging.getLogger(__name__)


PAIRS_QUERY = """
query($first: Int!, $skip: Int!, $now: Int!) {
  pairs(first: $first, skip: $skip, orderBy: reserveUSD, orderDirection: desc) {
    id
    token0 { id symbol name }
    token1 { id symbol name }
    reserveUSD
    volumeUSD
    pairHourData(where: { hourStartUnix_gt: $now }) {
      hourlyVolumeUSD
    }
  }
}
"""

_CENT = Decimal("0.01")


def _dec(value: Any) -> Decimal:
    try:
        return Decimal(str(value)) if value is not None else Decimal(0)
    except InvalidOperation:
        return Decimal(0)


def trailing_volume(pair: Dict[str, Any]) -> Decimal:
    """Sum of the hourly volume buckets returned for the trailing 24h."""
    total = Decimal(0)
    for bucket in pair.get("pairHourData") or []:
        total += _dec(bucket.get("hourlyVolumeUSD"))
    return total


def lp_fee_apr(volume_24h: Decimal, reserve_usd: Decimal, fee_rate: float) -> float:
    """Annualized LP fee yield in %, rounded to 2 decimals; 0 for empty pools."""
    if reserve_usd <= 0:
        return 0.0
    apr = volume_24h * DAYS_PER_YEAR * _dec(fee_rate) / reserve_usd * 100
    return float(apr.quantize(_CENT, rounding=ROUND_HALF_UP))


def calculate_lp_aprs(pairs: List[Dict[str, Any]], fee_rate: float, min_reserve_usd: float) -> List[NetswapPair]:
    """Drop pairs under the liquidity floor and compute fee APR for the rest, highest first."""
    floor = _dec(min_reserve_usd)
    out: List[NetswapPair] = []
    for pair in pairs:
        reserve = _dec(pair.get("reserveUSD"))
        if reserve <= 0 or reserve <= floor:
            continue
        volume = trailing_volume(pair)
        token0 = (pair.get("token0") or {}).get("symbol") or ""
        token1 = (pair.get("token1") or {}).get("symbol") or ""
        out.append(
            NetswapPair(
                id=str(pair.get("id") or ""),
                name=f"{token0}-{token1}",
                symbol=f"{token0}/{token1}",
                reserveUSD=float(reserve),
                volumeUSD=float(_dec(pair.get("volumeUSD"))),
                last24HourVol=float(volume),
                apr=lp_fee_apr(volume, reserve, fee_rate),
            )
        )
    out.sort(key=lambda p: p.apr, reverse=True)
    return out


class NetswapAdapter(YieldAdapter):
    """LP fee yield for Netswap pairs, derived from trailing 24h volume."""

    @property
    def protocol_name(self) -> str:
        return "Netswap"

    async def fetch_pairs(self) -> List[Dict[str, Any]]:
        """Page through every pair until the subgraph returns an empty page."""
        page_size = self.settings.NETSWAP_PAGE_SIZE
        max_pages = self.settings.NETSWAP_MAX_PAGES
        since = int(time.time()) - SECONDS_PER_DAY
        pairs: List[Dict[str, Any]] = []
        skip = 0
        pages = 0
        while True:
            data = await graphql_query(
                self.http,
                self.settings.NETSWAP_GRAPH_URL,
                PAIRS_QUERY,
                {"first": page_size, "skip": skip, "now": since},
            )
            batch = data.get("pairs") or []
            if not batch:
                break
            pairs.extend(batch)
            skip += page_size
            pages += 1
            if max_pages is not None and pages >= max_pages:
                logger.warning(f"Netswap pagination stopped at {pages} pages")
                break
        logger.debug(f"Fetched {len(pairs)} Netswap pairs")
        return pairs

    async def fetch_raw(self) -> List[NetswapPair]:
        pairs = await self.fetch_pairs()
        return calculate_lp_aprs(
            pairs,
            fee_rate=self.settings.NETSWAP_FEE_RATE,
            min_reserve_usd=self.settings.NETSWAP_MIN_RESERVE_USD,
        )
