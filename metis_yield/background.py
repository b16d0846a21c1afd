from __future__ import annotations

import asyncio
import logging

from metis_yield.services.aggregator import YieldAggregator

logger = logging.getLogger(__name__)


class BackgroundRefresher:
    def __init__(self, aggregator: YieldAggregator, interval_seconds: int):
        self.aggregator = aggregator
        self.interval = interval_seconds
        self._task: asyncio.Task | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        if self._task is None:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        self._stopping.set()
        if self._task:
            await self._task
            self._task = None

    async def _run_loop(self) -> None:
        logger.info(f"Background refresher started (interval={self.interval}s)")
        while not self._stopping.is_set():
            try:
                records = await self.aggregator.refresh()
                logger.info(f"Refreshed records: {len(records)}")
            except Exception as e:
                logger.exception(f"Refresh iteration failed: {e}")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
