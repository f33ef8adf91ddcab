from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import httpx

from ..config import Settings, get_settings
from ..metrics import record_upstream_latency
from ..observability import record_cache_lookup, record_upstream_request
from .cache import ResponseCache, build_cache_key
from .models import (
    CacheTTLPolicy,
    Currency,
    MemeSortBy,
    MemeSource,
    MemeTokenList,
    NetWorthDirection,
    NetWorthInterval,
    PriceData,
    SortType,
    Timeframe,
    endpoint_category,
)
from .retry import ClientRequestError, RemoteAPIError, RetryConfig, RetryPolicy


@dataclass(slots=True)
class MarketDataClientConfig:
    """Construction-time configuration for the Birdeye market data client."""

    base_url: str = "https://public-api.birdeye.so"
    api_key: str | None = None
    chain: str = "solana"
    timeout_seconds: float = 10.0
    retry: RetryConfig = field(default_factory=RetryConfig)
    ttl: CacheTTLPolicy = field(default_factory=CacheTTLPolicy)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "MarketDataClientConfig":
        settings = settings or get_settings()
        return cls(
            base_url=settings.birdeye_base_url.rstrip("/"),
            api_key=settings.birdeye_api_key,
            chain=settings.birdeye_chain,
            timeout_seconds=settings.birdeye_timeout_seconds,
            retry=RetryConfig.from_settings(settings),
            ttl=CacheTTLPolicy.from_settings(settings),
        )


def _format_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class MarketDataClient:
    """
    Token, market and wallet lookups against the Birdeye public API.

    Every query consults the response cache first; on a miss the GET goes
    through the retry policy and the parsed body is cached with a TTL chosen
    by endpoint category. Responses arrive as ``{"success": bool, "data": T}``
    envelopes and callers receive ``data``.
    """

    def __init__(
        self,
        config: MarketDataClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        cache: ResponseCache | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._config = config or MarketDataClientConfig.from_settings()
        self._logger = logging.getLogger("solwatch.market_data.client")
        self._cache = cache if cache is not None else ResponseCache()
        self._retry = retry_policy or RetryPolicy(self._config.retry, logger=self._logger)
        headers = {
            "accept": "application/json",
            "x-chain": self._config.chain,
        }
        if self._config.api_key:
            headers["X-API-KEY"] = self._config.api_key
        self._headers = headers
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(self._config.timeout_seconds))

    async def __aenter__(self) -> "MarketDataClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def cache_size(self) -> int:
        return self._cache.size()

    def clear_cache(self) -> None:
        self._cache.clear()

    # Token listings

    async def get_trending_tokens(self, limit: int = 20) -> dict[str, Any]:
        return await self._fetch_data(
            "/defi/token_trending",
            {
                "sort_by": "rank",
                "sort_type": "asc",
                "offset": 0,
                "limit": limit,
                "ui_amount_mode": "scaled",
            },
        )

    async def get_meme_tokens(
        self,
        limit: int = 20,
        offset: int = 0,
        sort_by: MemeSortBy = "created_at",
        sort_type: SortType = "desc",
        source: MemeSource | None = None,
        min_market_cap: float | None = None,
        max_market_cap: float | None = None,
    ) -> MemeTokenList:
        return await self._fetch_data(
            "/defi/v3/token/meme/list",
            {
                "limit": limit,
                "offset": offset,
                "sort_by": sort_by,
                "sort_type": sort_type,
                "ui_amount_mode": "scaled",
                "source": source,
                "min_market_cap": min_market_cap or None,
                "max_market_cap": max_market_cap or None,
            },
        )

    async def get_trending_meme_tokens(self, limit: int = 20) -> MemeTokenList:
        return await self.get_meme_tokens(limit, 0, "volume_24h", "desc")

    async def get_new_meme_tokens(self, limit: int = 20) -> MemeTokenList:
        return await self.get_meme_tokens(limit, 0, "created_at", "desc")

    async def get_pumpfun_tokens(self, limit: int = 20) -> MemeTokenList:
        return await self.get_meme_tokens(limit, 0, "created_at", "desc", "pump.fun")

    async def get_moonshot_tokens(self, limit: int = 20) -> MemeTokenList:
        return await self.get_meme_tokens(limit, 0, "created_at", "desc", "moonshot")

    async def get_meme_token_detail(self, address: str) -> dict[str, Any]:
        return await self._fetch_data(
            "/defi/v3/token/meme/detail/single",
            {"address": address, "ui_amount_mode": "scaled"},
        )

    # Single token

    async def get_token_metadata(self, address: str) -> dict[str, Any]:
        return await self._fetch_data("/defi/v3/token/meta-data/single", {"address": address})

    async def get_token_market_data(self, address: str) -> dict[str, Any]:
        return await self._fetch_data(
            "/defi/v3/token/market-data",
            {"address": address, "ui_amount_mode": "scaled"},
        )

    async def get_token_overview(self, address: str) -> dict[str, Any]:
        return await self._fetch_data(
            "/defi/token_overview",
            {"address": address, "ui_amount_mode": "scaled"},
        )

    async def get_token_trades(self, address: str, limit: int = 50, offset: int = 0) -> dict[str, Any]:
        return await self._fetch_data(
            "/defi/txs/token",
            {
                "address": address,
                "offset": offset,
                "limit": limit,
                "tx_type": "swap",
                "sort_type": "desc",
                "ui_amount_mode": "scaled",
            },
        )

    # Prices and search

    async def get_token_price(self, address: str) -> PriceData:
        return await self._fetch_data(
            "/defi/price",
            {"address": address, "include_liquidity": True, "ui_amount_mode": "scaled"},
        )

    async def get_multiple_token_prices(self, addresses: Sequence[str]) -> dict[str, PriceData]:
        return await self._fetch_data(
            "/defi/multi_price",
            {
                "list_address": ",".join(addresses),
                "include_liquidity": True,
                "ui_amount_mode": "scaled",
            },
        )

    async def search_tokens(self, keyword: str, limit: int = 20) -> dict[str, Any]:
        return await self._fetch_data(
            "/defi/v3/search",
            {
                "keyword": keyword,
                "target": "token",
                "search_mode": "fuzzy",
                "search_by": "combination",
                "sort_by": "volume_24h_usd",
                "sort_type": "desc",
                "offset": 0,
                "limit": limit,
                "ui_amount_mode": "scaled",
            },
        )

    # Candles

    async def get_ohlcv(
        self,
        address: str,
        time_from: int,
        time_to: int,
        type: Timeframe = "1h",
    ) -> dict[str, Any]:
        return await self._fetch_data(
            "/defi/ohlcv",
            {
                "address": address,
                "type": type,
                "currency": "usd",
                "time_from": time_from,
                "time_to": time_to,
                "ui_amount_mode": "scaled",
            },
        )

    async def get_ohlcv_v3(
        self,
        address: str,
        time_from: int,
        time_to: int,
        type: Timeframe = "1h",
        currency: Currency = "usd",
    ) -> dict[str, Any]:
        return await self._fetch_data(
            "/defi/v3/ohlcv",
            {
                "address": address,
                "type": type,
                "currency": currency,
                "time_from": time_from,
                "time_to": time_to,
                "ui_amount_mode": "scaled",
            },
        )

    async def get_ohlcv_count(
        self,
        address: str,
        count: int = 100,
        type: Timeframe = "1h",
        currency: Currency = "usd",
    ) -> dict[str, Any]:
        return await self._fetch_data(
            "/defi/v3/ohlcv",
            {
                "address": address,
                "type": type,
                "currency": currency,
                "mode": "count",
                "count_limit": count,
                "ui_amount_mode": "scaled",
            },
        )

    # Wallets

    async def get_wallet_net_worth(self, wallet: str) -> dict[str, Any]:
        return await self._fetch_data(
            "/wallet/v2/current-net-worth",
            {"wallet": wallet, "sort_by": "value", "sort_type": "desc", "limit": 100, "offset": 0},
        )

    async def get_wallet_net_worth_history(
        self,
        wallet: str,
        count: int = 7,
        type: NetWorthInterval = "1d",
        direction: NetWorthDirection = "back",
    ) -> dict[str, Any]:
        return await self._fetch_data(
            "/wallet/v2/net-worth",
            {"wallet": wallet, "count": count, "direction": direction, "type": type, "sort_type": "desc"},
        )

    async def get_wallet_pnl(self, wallet: str, token_addresses: Sequence[str]) -> dict[str, Any]:
        return await self._fetch_data(
            "/wallet/v2/pnl",
            {"wallet": wallet, "token_addresses": ",".join(token_addresses)},
        )

    async def get_wallet_token_balance(self, wallet: str, token_address: str) -> dict[str, Any]:
        return await self._fetch_data(
            "/v1/wallet/token_balance",
            {"wallet": wallet, "token_address": token_address, "ui_amount_mode": "scaled"},
        )

    async def get_wallet_portfolio(self, wallet: str) -> dict[str, Any]:
        return await self._fetch_data(
            "/v1/wallet/token_list",
            {"wallet": wallet, "ui_amount_mode": "scaled"},
        )

    async def _fetch_data(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        payload = await self._request(endpoint, params)
        return payload["data"]

    async def _request(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
        cleaned = {key: value for key, value in (params or {}).items() if value is not None}
        cache_key = build_cache_key(endpoint, cleaned)
        cached = self._cache.get(cache_key)
        if cached is not None:
            record_cache_lookup(hit=True)
            return cached
        record_cache_lookup(hit=False)

        url = f"{self._config.base_url}{endpoint}"
        query = {key: _format_param(value) for key, value in cleaned.items()}
        category = endpoint_category(endpoint)
        started = time.perf_counter()
        try:
            payload = await self._retry.execute(
                endpoint,
                lambda: self._client.get(url, params=query, headers=self._headers),
            )
        except ClientRequestError:
            record_upstream_request(category, "client_error")
            raise
        except RemoteAPIError:
            record_upstream_request(category, "failed")
            raise
        latency_ms = (time.perf_counter() - started) * 1000
        record_upstream_request(category, "success", latency_ms)
        record_upstream_latency(latency_ms)

        if not isinstance(payload, Mapping) or "data" not in payload:
            raise RemoteAPIError(f"{endpoint} response missing data envelope", endpoint=endpoint)
        if payload.get("success") is False:
            message = payload.get("message") or "upstream reported failure"
            raise RemoteAPIError(f"{endpoint}: {message}", endpoint=endpoint)

        self._cache.set(cache_key, payload, self._config.ttl.ttl_for(endpoint))
        self._logger.debug("Cached %s (category=%s, %.1fms)", endpoint, category, latency_ms)
        return payload


__all__ = ["MarketDataClient", "MarketDataClientConfig"]
