from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from metis_yield.clients.aave import AaveAdapter
from metis_yield.clients.base import YieldAdapter
from metis_yield.clients.enki import EnkiAdapter
from metis_yield.clients.hercules import HerculesAdapter
from metis_yield.clients.netswap import NetswapAdapter
from metis_yield.config import Settings, get_settings
from metis_yield.errors import AggregationError
from metis_yield.http import HttpClient
from metis_yield.models import (
    SUPPORTED_CATEGORIES,
    AggregatorStatus,
    TvlSummary,
    UnifiedYieldRecord,
)
from metis_yield.services.cache import RecordCache
from metis_yield.services.normalize import normalize
from metis_yield.utils.format import format_amount

logger = logging.getLogger(__name__)


def default_adapters(http: HttpClient, settings: Settings) -> List[YieldAdapter]:
    # Merge order is part of the output contract: Hercules, AAVE, Netswap, Enki
    return [
        HerculesAdapter(http, settings),
        AaveAdapter(http, settings),
        NetswapAdapter(http, settings),
        EnkiAdapter(http, settings),
    ]


class YieldAggregator:
    def __init__(
        self,
        http: HttpClient,
        settings: Optional[Settings] = None,
        adapters: Optional[Sequence[YieldAdapter]] = None,
        cache: Optional[RecordCache] = None,
    ):
        self.http = http
        self.settings = settings or get_settings()
        self.adapters: List[YieldAdapter] = list(adapters) if adapters is not None else default_adapters(http, self.settings)
        self.cache = cache or RecordCache(max_age_seconds=self.settings.CACHE_MAX_AGE_SECONDS)
        self._last_counts: Dict[str, int] = {}
        self._failed: List[str] = []

    @property
    def last_refresh_at(self) -> float | None:
        return self.cache.last_refresh_at

    async def _run_adapter(self, adapter: YieldAdapter) -> List[UnifiedYieldRecord]:
        raw = await adapter.fetch()
        records: List[UnifiedYieldRecord] = []
        for item in raw:
            try:
                records.append(normalize(item))
            except Exception as e:
                logger.debug(f"Skipping malformed {adapter.protocol_name} record: {e}")
        return records

    async def _fetch_all(self) -> List[UnifiedYieldRecord]:
        results = await asyncio.gather(
            *(self._run_adapter(a) for a in self.adapters),
            return_exceptions=True,
        )
        merged: List[UnifiedYieldRecord] = []
        counts: Dict[str, int] = {}
        failed: List[str] = []
        for adapter, res in zip(self.adapters, results):
            if isinstance(res, BaseException):
                logger.warning(f"Error fetching {adapter.protocol_name} data: {res!r}")
                failed.append(adapter.protocol_name)
                counts[adapter.protocol_name] = 0
                continue
            if not res:
                failed.append(adapter.protocol_name)
            counts[adapter.protocol_name] = len(res)
            merged.extend(res)

        # Only Dex, Lending and LST records are served
        merged = [r for r in merged if r.protocol in SUPPORTED_CATEGORIES]
        self._last_counts = counts
        self._failed = failed
        logger.info(f"Aggregated {len(merged)} records from {len(self.adapters) - len(failed)}/{len(self.adapters)} sources")
        return merged

    async def fetch_all_protocols_data(self, force: bool = False) -> List[UnifiedYieldRecord]:
        try:
            return await self.cache.get(self._fetch_all, force=force)
        except Exception as e:
            logger.error(f"Error fetching protocol data: {e}")
            raise AggregationError(str(e)) from e

    async def refresh(self) -> List[UnifiedYieldRecord]:
        return await self.fetch_all_protocols_data(force=True)

    def invalidate(self) -> None:
        self.cache.invalidate()

    async def get_all_data(self) -> List[UnifiedYieldRecord]:
        return await self.fetch_all_protocols_data()

    async def get_data_by_protocol(self, protocol: str) -> List[UnifiedYieldRecord]:
        records = await self.fetch_all_protocols_data()
        wanted = protocol.lower()
        return [r for r in records if r.protocol_name.lower() == wanted]

    async def get_top_yield(self, limit: int = 10) -> List[UnifiedYieldRecord]:
        records = await self.fetch_all_protocols_data()
        if limit <= 0:
            return []
        # sorted() is stable: equal APYs keep adapter order
        return sorted(records, key=lambda r: r.apy or 0.0, reverse=True)[:limit]

    async def get_data_by_token(self, token: str) -> List[UnifiedYieldRecord]:
        records = await self.fetch_all_protocols_data()
        needle = token.lower()
        return [r for r in records if needle in r.name.lower()]

    async def get_total_tvl(self) -> TvlSummary:
        records = await self.fetch_all_protocols_data()
        by_protocol: Dict[str, float] = {}
        for r in records:
            by_protocol[r.protocol_name] = by_protocol.get(r.protocol_name, 0.0) + r.tvl
        total = sum(by_protocol.values())
        return TvlSummary(
            totalTvl=f"${format_amount(total)}",
            byProtocol={name: f"${format_amount(tvl)}" for name, tvl in by_protocol.items()},
        )

    def status(self) -> AggregatorStatus:
        records = self.cache.peek() or []
        return AggregatorStatus(
            last_refresh_at=self.cache.last_refresh_at,
            records_tracked=len(records),
            records_by_adapter=dict(self._last_counts),
            failed_adapters=list(self._failed),
        )
