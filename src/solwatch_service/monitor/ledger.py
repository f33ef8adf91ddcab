from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import httpx

from ..config import Settings, get_settings
from ..market_data.retry import RetryConfig, RetryPolicy
from ..metrics import record_transaction_fetch_latency


class LedgerReadError(RuntimeError):
    """Raised when the RPC node answers with a JSON-RPC error object."""


class TransactionSource(Protocol):
    async def get_transaction(self, signature: str) -> Mapping[str, Any] | None:
        ...


@dataclass(slots=True)
class SolanaRpcConfig:
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"
    timeout_seconds: float = 10.0
    retry: RetryConfig = field(default_factory=lambda: RetryConfig(max_retries=2))

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SolanaRpcConfig":
        settings = settings or get_settings()
        return cls(
            rpc_url=settings.solana_rpc_url,
            commitment=settings.solana_commitment,
            timeout_seconds=settings.solana_rpc_timeout_seconds,
            retry=RetryConfig(
                max_retries=settings.solana_rpc_max_retries,
                base_delay_seconds=settings.market_data_backoff_seconds,
                max_delay_seconds=settings.market_data_backoff_max_seconds,
                backoff_multiplier=settings.market_data_backoff_multiplier,
            ),
        )


class SolanaRpcClient:
    """
    JSON-RPC reader for confirmed transactions.

    Transport failures, 429 and 5xx answers share the market data retry policy.
    """

    def __init__(
        self,
        config: SolanaRpcConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._config = config or SolanaRpcConfig.from_settings()
        self._logger = logging.getLogger("solwatch.monitor.ledger")
        self._retry = retry_policy or RetryPolicy(self._config.retry, logger=self._logger)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.timeout_seconds),
            headers={"Content-Type": "application/json"},
        )
        self._request_ids = itertools.count(1)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_transaction(self, signature: str) -> Mapping[str, Any] | None:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": "getTransaction",
            "params": [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self._config.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        }
        started = time.perf_counter()
        payload = await self._retry.execute(
            "getTransaction",
            lambda: self._client.post(self._config.rpc_url, json=body),
        )
        record_transaction_fetch_latency((time.perf_counter() - started) * 1000)
        if not isinstance(payload, Mapping):
            raise LedgerReadError("getTransaction returned a non-object payload")
        error = payload.get("error")
        if error:
            message = error.get("message") if isinstance(error, Mapping) else error
            raise LedgerReadError(f"getTransaction({signature}) failed: {message}")
        result = payload.get("result")
        if result is None:
            self._logger.debug("Transaction %s not available yet", signature)
        return result


__all__ = ["LedgerReadError", "SolanaRpcClient", "SolanaRpcConfig", "TransactionSource"]
