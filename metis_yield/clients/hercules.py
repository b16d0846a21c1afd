from __future__ import annotations

import logging
from typing import Any, Dict, List

from metis_yield.clients.base import YieldAdapter
from metis_yield.errors import InvalidSourceData
from metis_yield.models import HerculesPool
from metis_yield.utils.format import apy_from_apr

logger = logging.getLogger(__name__)


def _as_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_pool(raw: Dict[str, Any]) -> HerculesPool:
    apr = _as_float(raw.get("totalApr"))
    apy = _as_float(raw.get("apy"))
    # APY is synthesized only when the summary omits it
    if apy is None and apr is not None:
        apy = apy_from_apr(apr)
    return HerculesPool(
        pool=str(raw.get("pool") or ""),
        address=str(raw.get("address") or ""),
        name=str(raw.get("name") or ""),
        totalApr=apr or 0.0,
        apy=apy or 0.0,
        tvl=str(raw.get("tvl") or "0"),
    )


class HerculesAdapter(YieldAdapter):
    """Pools from the Hercules hosted APY summary, which already reports APR/APY/TVL."""

    @property
    def protocol_name(self) -> str:
        return "Hercules"

    async def _fetch_summary(self) -> Dict[str, Any]:
        resp = await self.http.get(self.settings.HERCULES_YIELD_URL)
        body = resp.json()
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get("pools"), dict):
            raise InvalidSourceData("Hercules summary is missing data.pools")
        return data

    async def fetch_pools(self) -> List[HerculesPool]:
        data = await self._fetch_summary()
        pools: List[HerculesPool] = []
        for address, raw in data["pools"].items():
            if not isinstance(raw, dict):
                logger.debug(f"Skipping malformed Hercules pool {address}")
                continue
            pools.append(parse_pool({"address": address, **raw}))
        return pools

    async def fetch_raw(self) -> List[HerculesPool]:
        return await self.fetch_pools()
