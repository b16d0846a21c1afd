from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from metis_yield.models import UnifiedYieldRecord

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[List[UnifiedYieldRecord]]]


class RecordCache:
    """In-memory holder for the merged record set.

    ``max_age_seconds=None`` keeps a populated set for the process lifetime.
    Concurrent misses share one in-flight population, and a failed population
    falls back to the previous (stale) records when there are any.
    """

    def __init__(self, max_age_seconds: float | None = None, clock: Callable[[], float] = time.monotonic):
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._records: Optional[List[UnifiedYieldRecord]] = None
        self._populated_at: float | None = None
        self._last_refresh_at: float | None = None
        self._expired = False
        self._inflight: asyncio.Task | None = None

    @property
    def last_refresh_at(self) -> float | None:
        """Unix timestamp of the last successful population."""
        return self._last_refresh_at

    @property
    def is_populated(self) -> bool:
        return self._records is not None

    def is_fresh(self) -> bool:
        # An empty set counts as a miss so a failed first pass is retried
        if not self._records or self._expired:
            return False
        if self.max_age_seconds is None:
            return True
        return (self._clock() - self._populated_at) < self.max_age_seconds

    def peek(self) -> Optional[List[UnifiedYieldRecord]]:
        """Current records regardless of age, or None if never populated."""
        return list(self._records) if self._records is not None else None

    def set(self, records: List[UnifiedYieldRecord]) -> None:
        self._records = list(records)
        self._populated_at = self._clock()
        self._last_refresh_at = time.time()
        self._expired = False

    def invalidate(self) -> None:
        """Force the next read to repopulate; current records stay available as fallback."""
        self._expired = True

    def clear(self) -> None:
        self._records = None
        self._populated_at = None
        self._expired = False

    async def get(self, loader: Loader, force: bool = False) -> List[UnifiedYieldRecord]:
        if not force and self.is_fresh():
            return list(self._records)
        return await self._populate(loader)

    async def _populate(self, loader: Loader) -> List[UnifiedYieldRecord]:
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._load(loader))
            self._inflight.add_done_callback(self._clear_inflight)
        else:
            logger.debug("Joining in-flight population")
        return list(await asyncio.shield(self._inflight))

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _load(self, loader: Loader) -> List[UnifiedYieldRecord]:
        try:
            records = await loader()
        except Exception as e:
            if self._records:
                logger.warning(f"Population failed, serving {len(self._records)} cached records: {e}")
                return list(self._records)
            raise
        self.set(records)
        return records
