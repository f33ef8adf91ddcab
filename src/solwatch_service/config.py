from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SOLWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    service_name: str = "solwatch-service"
    service_port: int = 8085
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    log_dir: str | None = "logs"

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ]
    )

    # Birdeye market data upstream
    birdeye_base_url: str = "https://public-api.birdeye.so"
    birdeye_api_key: str | None = None
    birdeye_chain: str = "solana"
    birdeye_timeout_seconds: float = 10.0
    market_data_max_retries: int = 3
    market_data_backoff_seconds: float = 1.0
    market_data_backoff_max_seconds: float = 30.0
    market_data_backoff_multiplier: float = 2.0
    market_data_listing_ttl_seconds: float = 60.0  # trending + meme listings
    market_data_price_ttl_seconds: float = 15.0
    market_data_ohlcv_ttl_seconds: float = 120.0
    market_data_default_ttl_seconds: float = 30.0

    # Solana ledger access
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    solana_ws_url: str = "wss://api.mainnet-beta.solana.com"
    solana_commitment: Literal["processed", "confirmed", "finalized"] = "confirmed"
    solana_rpc_timeout_seconds: float = 10.0
    solana_rpc_max_retries: int = 2
    solana_ws_ping_interval_seconds: float = 30.0

    # Pump.fun monitor
    pumpfun_program_id: str = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
    monitor_max_trade_history: int = 1000
    monitor_stats_window_seconds: float = 3600.0
    monitor_max_concurrent_fetches: int = 8
    monitor_autostart: bool = False

    # Trade alerts
    alert_volume_threshold_sol: float = 2.0
    alert_price_change_threshold: float = 0.2
    alert_history_size: int = 100


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
