from __future__ import annotations

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from metis_yield.constants import (
    ENKI_ANNUALIZATION_FACTOR,
    NETSWAP_FEE_RATE,
    NETSWAP_MIN_RESERVE_USD,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Runtime
    ENV: str = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # HTTP transport
    HTTP_TIMEOUT_SECONDS: float = Field(default=15.0)
    HTTP_RETRY_ATTEMPTS: int = Field(default=1, ge=1)

    # Metis network
    METIS_CHAIN_ID: int = Field(default=1088)
    METIS_RPC_URL: str = Field(default="https://metis.drpc.org")
    # Historical eth_call needs an archive-capable node
    METIS_HISTORICAL_RPC_URL: str = Field(default="https://andromeda.metis.io/?owner=1088")

    # AAVE v3 (lending)
    AAVE_API_URL: str = Field(default="https://api.v3.aave.com/graphql")

    # Hercules (hosted summary)
    HERCULES_YIELD_URL: str = Field(default="https://api.hercules.exchange/pools/apy")

    # Netswap (dex subgraph)
    NETSWAP_GRAPH_URL: str = Field(default="https://metisapi.0xgraph.xyz/subgraphs/name/netswap/exchange")
    NETSWAP_PAGE_SIZE: int = Field(default=100, ge=1, le=1000)
    NETSWAP_MAX_PAGES: int | None = Field(default=None, description="Safety cap on pagination; None pages until empty")
    NETSWAP_FEE_RATE: float = Field(default=NETSWAP_FEE_RATE)
    NETSWAP_MIN_RESERVE_USD: float = Field(default=NETSWAP_MIN_RESERVE_USD)

    # Enki (liquid staking)
    ENKI_GRAPH_URL: str = Field(
        default="https://api.metis.0xgraph.xyz/api/public/7628e867-6568-4fe1-9c24-742d1ffc6e79/subgraphs/generated/RewardDispatcher/v0.0.2/gn"
    )
    ENKI_TOKEN_ADDRESS: str = Field(default="0x79F3522a1b56f22a6549e42f9cfa92eF5FEb81e8")
    ENKI_ANNUALIZATION_FACTOR: float = Field(default=ENKI_ANNUALIZATION_FACTOR)

    # External APIs
    COINGECKO_BASE_URL: str = Field(default="https://api.coingecko.com/api/v3")
    COINGECKO_API_KEY: str | None = None

    # Cache / refresh
    CACHE_MAX_AGE_SECONDS: float | None = Field(default=None, description="None keeps records for the process lifetime")
    ENABLE_BACKGROUND_REFRESH: bool = Field(default=False)
    REFRESH_INTERVAL_SECONDS: int = Field(default=600, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
