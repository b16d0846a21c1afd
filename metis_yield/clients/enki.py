from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List

from metis_yield.clients.base import YieldAdapter
from metis_yield.clients.graphql import graphql_query
from metis_yield.clients.rpc import get_total_supply
from metis_yield.constants import DAYS_PER_YEAR, ENKI_TOKEN_DECIMALS
from metis_yield.errors import InvalidSourceData
from metis_yield.models import EnkiDistribution
from metis_yield.utils.format import format_units

logger = logging.getLogger(__name__)


DISPATCHED_QUERY = """
query {
  dispatcheds(orderBy: blockNumber, orderDirection: desc) {
    id
    amount
    toVaultAmount
    toTreasuryAmount
    transactionHash
    blockNumber
    blockTimestamp
  }
}
"""


def distribution_apr(to_vault_amount: Any, total_supply: int, annualization_factor: float) -> float:
    """Annualized reward rate (%) of one distribution relative to the eMetis supply at its block."""
    if total_supply <= 0:
        raise InvalidSourceData("eMetis total supply is zero")
    share = Decimal(str(to_vault_amount)) / Decimal(total_supply)
    return float(share * DAYS_PER_YEAR * Decimal(str(annualization_factor)))


class EnkiAdapter(YieldAdapter):
    """eMetis staking yield from RewardDispatcher distribution events."""

    @property
    def protocol_name(self) -> str:
        return "Enki"

    async def fetch_distributions(self) -> List[Dict[str, Any]]:
        data = await graphql_query(self.http, self.settings.ENKI_GRAPH_URL, DISPATCHED_QUERY)
        return list(data.get("dispatcheds") or [])

    async def total_supply_at(self, block_number: Any) -> int:
        return await get_total_supply(
            self.http,
            self.settings.METIS_HISTORICAL_RPC_URL,
            self.settings.ENKI_TOKEN_ADDRESS,
            block_number,
        )

    async def _to_distribution(self, event: Dict[str, Any]) -> EnkiDistribution:
        total_supply = await self.total_supply_at(event["blockNumber"])
        apr = distribution_apr(event["toVaultAmount"], total_supply, self.settings.ENKI_ANNUALIZATION_FACTOR)
        return EnkiDistribution(
            id=str(event.get("id") or ""),
            amount=str(event.get("amount") or "0"),
            tvl=format_units(total_supply, ENKI_TOKEN_DECIMALS),
            apr=apr,
            timestamp=str(event.get("blockTimestamp") or ""),
        )

    async def fetch_raw(self) -> List[EnkiDistribution]:
        events = await self.fetch_distributions()
        results = await asyncio.gather(
            *(self._to_distribution(e) for e in events),
            return_exceptions=True,
        )
        out: List[EnkiDistribution] = []
        for event, res in zip(events, results):
            if isinstance(res, BaseException):
                logger.warning(f"Skipping Enki distribution {event.get('id')}: {res}")
                continue
            out.append(res)
        return out
