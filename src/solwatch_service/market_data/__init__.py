"""Birdeye market data access: response cache, retry policy and the query client."""

from .cache import CacheEntry, CacheEntrySnapshot, ResponseCache, build_cache_key
from .client import MarketDataClient, MarketDataClientConfig
from .models import CacheTTLPolicy, endpoint_category
from .retry import (
    ClientRequestError,
    RemoteAPIError,
    RetryConfig,
    RetryPolicy,
    TransientUpstreamError,
)

__all__ = [
    "CacheEntry",
    "CacheEntrySnapshot",
    "CacheTTLPolicy",
    "ClientRequestError",
    "MarketDataClient",
    "MarketDataClientConfig",
    "RemoteAPIError",
    "ResponseCache",
    "RetryConfig",
    "RetryPolicy",
    "TransientUpstreamError",
    "build_cache_key",
    "endpoint_category",
]
