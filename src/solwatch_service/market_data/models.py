from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, TypedDict

from ..config import Settings, get_settings

Timeframe = Literal[
    "1s", "15s", "30s", "1m", "3m", "5m", "15m", "30m",
    "1h", "2h", "4h", "6h", "8h", "12h", "1d", "3d", "1w", "1M",
]
Currency = Literal["usd", "native"]
SortType = Literal["asc", "desc"]
MemeSortBy = Literal["created_at", "market_cap", "volume_24h", "price_change_24h"]
MemeSource = Literal["pump.fun", "moonshot", "jupiter"]
NetWorthInterval = Literal["1h", "1d"]
NetWorthDirection = Literal["back", "forward"]
EndpointCategory = Literal["listing", "price", "ohlcv", "default"]


class PriceData(TypedDict, total=False):
    value: float
    updateUnixTime: int
    updateHumanTime: str
    priceChange24h: float
    liquidity: float


class OHLCVCandle(TypedDict, total=False):
    o: float
    h: float
    l: float
    c: float
    v: float
    v_usd: float
    unix_time: int
    address: str
    type: str
    currency: str


class MemeTokenList(TypedDict, total=False):
    tokens: list[dict[str, Any]]
    total: int
    has_next: bool


def endpoint_category(endpoint: str) -> EndpointCategory:
    """Bucket an upstream path for TTL selection; listings win over prices."""
    if "trending" in endpoint or "meme" in endpoint:
        return "listing"
    if "price" in endpoint:
        return "price"
    if "ohlcv" in endpoint:
        return "ohlcv"
    return "default"


@dataclass(slots=True)
class CacheTTLPolicy:
    listing_seconds: float = 60.0
    price_seconds: float = 15.0
    ohlcv_seconds: float = 120.0
    default_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CacheTTLPolicy":
        settings = settings or get_settings()
        return cls(
            listing_seconds=settings.market_data_listing_ttl_seconds,
            price_seconds=settings.market_data_price_ttl_seconds,
            ohlcv_seconds=settings.market_data_ohlcv_ttl_seconds,
            default_seconds=settings.market_data_default_ttl_seconds,
        )

    def ttl_for(self, endpoint: str) -> float:
        category = endpoint_category(endpoint)
        if category == "listing":
            return self.listing_seconds
        if category == "price":
            return self.price_seconds
        if category == "ohlcv":
            return self.ohlcv_seconds
        return self.default_seconds


__all__ = [
    "CacheTTLPolicy",
    "Currency",
    "EndpointCategory",
    "MemeSortBy",
    "MemeSource",
    "MemeTokenList",
    "NetWorthDirection",
    "NetWorthInterval",
    "OHLCVCandle",
    "PriceData",
    "SortType",
    "Timeframe",
    "endpoint_category",
]
