from __future__ import annotations

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ProtocolCategory(str, Enum):
    DEX = "Dex"
    LENDING = "Lending"
    LST = "LST"
    UNKNOWN = "Unknown"


PROTOCOL_CATEGORIES: Dict[str, ProtocolCategory] = {
    "Hercules": ProtocolCategory.DEX,
    "Netswap": ProtocolCategory.DEX,
    "AAVE": ProtocolCategory.LENDING,
    "Enki": ProtocolCategory.LST,
}

SUPPORTED_CATEGORIES = frozenset({ProtocolCategory.DEX, ProtocolCategory.LENDING, ProtocolCategory.LST})


def get_category(protocol_name: str) -> ProtocolCategory:
    return PROTOCOL_CATEGORIES.get(protocol_name, ProtocolCategory.UNKNOWN)


class UnifiedYieldRecord(BaseModel):
    """One yield opportunity (reserve, LP pair, staking distribution) in the shared schema."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    protocol_name: str = Field(..., alias="protocolName")
    name: str = ""
    apy: float = Field(default=0.0, description="Compounded annual yield in %")
    apr: Optional[float] = Field(default=None, description="Simple annual rate in %")
    tvl: float = Field(default=0.0, ge=0.0, description="USD value locked")
    symbol: Optional[str] = None
    pool_address: Optional[str] = Field(default=None, alias="poolAddress")
    borrow: Optional[float] = None
    borrow_apy: Optional[float] = Field(default=None, alias="borrowApy")
    stable_borrow_apy: Optional[float] = Field(default=None, alias="stableBorrowApy")
    borrow_incentive_apr: Optional[float] = Field(default=None, alias="borrowIncentiveApr")

    @computed_field  # type: ignore[misc]
    @property
    def protocol(self) -> ProtocolCategory:
        return get_category(self.protocol_name)

    def to_public(self) -> Dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class TvlSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_tvl: str = Field(..., alias="totalTvl")
    by_protocol: Dict[str, str] = Field(default_factory=dict, alias="byProtocol")


class AggregatorStatus(BaseModel):
    last_refresh_at: Optional[float]
    records_tracked: int
    records_by_adapter: Dict[str, int]
    failed_adapters: List[str]


# Raw, protocol-native records returned by the adapters


class HerculesPool(BaseModel):
    kind: Literal["hercules"] = "hercules"
    pool: str = ""
    address: str = ""
    name: str = ""
    total_apr: float = Field(default=0.0, alias="totalApr")
    apy: float = 0.0
    tvl: str = "0"

    model_config = ConfigDict(populate_by_name=True)


class AaveReserve(BaseModel):
    kind: Literal["aave"] = "aave"
    symbol: str = ""
    name: str = ""
    underlying_asset: str = Field(default="", alias="underlyingAsset")
    # Rates are fractional strings, e.g. "0.0312" for 3.12%
    supply_apy: str = Field(default="0", alias="supplyAPY")
    variable_borrow_apy: str = Field(default="0", alias="variableBorrowAPY")
    stable_borrow_apy: str = Field(default="0", alias="stableBorrowAPY")
    incentive_apr: Optional[str] = Field(default=None, alias="incentiveAPR")
    total_liquidity_usd: str = Field(default="0", alias="totalLiquidityUSD")
    total_debt_usd: str = Field(default="0", alias="totalDebtUSD")
    borrow_usage_ratio: str = Field(default="0", alias="borrowUsageRatio")

    model_config = ConfigDict(populate_by_name=True)


class NetswapPair(BaseModel):
    kind: Literal["netswap"] = "netswap"
    id: str
    name: str
    symbol: str
    reserve_usd: float = Field(alias="reserveUSD")
    volume_usd: float = Field(default=0.0, alias="volumeUSD")
    last_24h_volume: float = Field(default=0.0, alias="last24HourVol")
    apr: float = 0.0

    model_config = ConfigDict(populate_by_name=True)


class EnkiDistribution(BaseModel):
    kind: Literal["enki"] = "enki"
    id: str
    amount: str = "0"
    tvl: str = "0"
    apr: float = 0.0
    timestamp: str = ""


RawYieldSource = Annotated[
    Union[HerculesPool, AaveReserve, NetswapPair, EnkiDistribution],
    Field(discriminator="kind"),
]
