"""Common interface for protocol adapters.

Every adapter fetches from its own upstream and returns protocol-native
records tagged with a ``kind``, which the normalization layer maps onto
``UnifiedYieldRecord``. Adapters absorb their own failures: an unreachable
or malformed source yields an empty list, so the aggregator can treat every
adapter the same way.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from metis_yield.config import Settings, get_settings
from metis_yield.http import HttpClient
from metis_yield.models import RawYieldSource

logger = logging.getLogger(__name__)


class YieldAdapter(ABC):
    def __init__(self, http: HttpClient, settings: Optional[Settings] = None):
        self.http = http
        self.settings = settings or get_settings()

    @property
    @abstractmethod
    def protocol_name(self) -> str:
        """Display name of the protocol, e.g. ``AAVE``."""
        ...

    @abstractmethod
    async def fetch_raw(self) -> Sequence[RawYieldSource]:
        """Fetch records from the upstream; may raise."""
        ...

    async def fetch(self) -> List[RawYieldSource]:
        """Fetch records, returning an empty list if the upstream fails."""
        try:
            return list(await self.fetch_raw())
        except Exception as e:
            logger.warning(f"{self.protocol_name} fetch failed: {e}")
            return []
