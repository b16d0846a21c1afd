from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from metis_yield import __version__
from metis_yield.background import BackgroundRefresher
from metis_yield.clients.coingecko import CoinGeckoClient
from metis_yield.config import get_settings
from metis_yield.errors import AggregationError
from metis_yield.http import HttpClient
from metis_yield.models import AggregatorStatus, TvlSummary, UnifiedYieldRecord
from metis_yield.services.aggregator import YieldAggregator
from metis_yield.utils.logging import setup_logging

app = FastAPI(
    title="Metis Yield Aggregator",
    version=__version__,
    description="Yield aggregator across multiple protocols in the Metis ecosystem",
)

logger = logging.getLogger(__name__)


def _get_aggregator() -> YieldAggregator:
    return app.state.aggregator


def _public(records: List[UnifiedYieldRecord]) -> List[Dict[str, Any]]:
    return [r.to_public() for r in records]


@app.exception_handler(AggregationError)
async def _aggregation_error(request: Request, exc: AggregationError):
    return JSONResponse(status_code=503, content={"detail": f"Yield data unavailable: {exc}"})


@app.on_event("startup")
async def startup_event() -> None:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    # Tests may install their own aggregator before startup
    if getattr(app.state, "aggregator", None) is None:
        app.state.http = HttpClient(timeout=settings.HTTP_TIMEOUT_SECONDS, retry_attempts=settings.HTTP_RETRY_ATTEMPTS)
        app.state.aggregator = YieldAggregator(app.state.http, settings)
    if getattr(app.state, "prices", None) is None:
        app.state.prices = CoinGeckoClient(app.state.aggregator.http, settings)
    app.state.refresher = None
    if settings.ENABLE_BACKGROUND_REFRESH:
        app.state.refresher = BackgroundRefresher(app.state.aggregator, settings.REFRESH_INTERVAL_SECONDS)
        await app.state.refresher.start()
    logger.info("Metis yield aggregator ready")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if getattr(app.state, "refresher", None):
        await app.state.refresher.stop()
    # Close standalone HTTP client
    if getattr(app.state, "http", None):
        try:
            await app.state.http.aclose()
        except Exception as e:
            logger.debug(f"HTTP client close failed: {e}")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/yield")
async def get_all_yield():
    """Yield information from all supported protocols."""
    records = await _get_aggregator().get_all_data()
    return _public(records)


@app.get("/api/yield/protocol/{protocol}")
async def get_yield_by_protocol(protocol: str):
    """Yield information from one protocol (AAVE, Hercules, Netswap, Enki)."""
    records = await _get_aggregator().get_data_by_protocol(protocol)
    return _public(records)


@app.get("/api/yield/top")
async def get_top_yield(limit: int = Query(10, ge=1, le=100)):
    records = await _get_aggregator().get_top_yield(limit)
    return _public(records)


@app.get("/api/yield/token/{token}")
async def get_yield_by_token(token: str):
    records = await _get_aggregator().get_data_by_token(token)
    return _public(records)


@app.get("/api/yield/tvl")
async def get_total_tvl():
    summary: TvlSummary = await _get_aggregator().get_total_tvl()
    return summary.model_dump(by_alias=True)


@app.get("/api/yield/status", response_model=AggregatorStatus)
async def get_status():
    return _get_aggregator().status()


@app.post("/api/yield/refresh")
async def post_refresh():
    aggregator = _get_aggregator()
    records = await aggregator.refresh()
    return {"refreshed": len(records), "last_refresh_at": aggregator.last_refresh_at}


@app.get("/api/price/{symbol}")
async def get_token_price(symbol: str):
    price = await app.state.prices.get_token_price(symbol)
    return {"symbol": symbol, "usd": price}
