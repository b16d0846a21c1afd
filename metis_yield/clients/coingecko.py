from __future__ import annotations

import logging
from typing import Dict, Optional

from metis_yield.config import Settings, get_settings
from metis_yield.http import HttpClient

logger = logging.getLogger(__name__)


COINGECKO_IDS: Dict[str, str] = {
    "Metis": "metis-token",
    "USDT": "tether",
    "USDC": "usd-coin",
}


class CoinGeckoClient:
    def __init__(self, http: HttpClient, settings: Optional[Settings] = None):
        self.http = http
        self.settings = settings or get_settings()

    async def get_token_price(self, symbol: str) -> float:
        """USD spot price for a token symbol; 0.0 when unknown or on failure."""
        coin_id = COINGECKO_IDS.get(symbol)
        if not coin_id:
            logger.warning(f"No CoinGecko id for token {symbol}")
            return 0.0
        url = f"{self.settings.COINGECKO_BASE_URL}/coins/{coin_id}"
        params = {
            "localization": "false",
            "tickers": "false",
            "community_data": "false",
            "developer_data": "false",
        }
        if self.settings.COINGECKO_API_KEY:
            params["x_cg_demo_api_key"] = self.settings.COINGECKO_API_KEY
        try:
            resp = await self.http.get(url, params=params)
            data = resp.json()
            return float(data["market_data"]["current_price"]["usd"])
        except Exception as e:
            logger.warning(f"CoinGecko price lookup failed for {symbol}: {e}")
            return 0.0
