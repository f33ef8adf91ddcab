from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

import httpx

from ..config import Settings, get_settings
from ..observability import record_upstream_retry

RetryReason = Literal["rate_limited", "server_error", "transport"]


class RemoteAPIError(RuntimeError):
    """Raised when an upstream HTTP call fails for good."""

    def __init__(self, message: str, *, status_code: int | None = None, endpoint: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class ClientRequestError(RemoteAPIError):
    """Non-retryable status: a 3xx redirect or a 4xx other than 429."""


class TransientUpstreamError(RemoteAPIError):
    """429, 5xx or a transport failure; retried until the policy gives up."""


@dataclass(slots=True)
class RetryConfig:
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    backoff_multiplier: float = 2.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RetryConfig":
        settings = settings or get_settings()
        return cls(
            max_retries=settings.market_data_max_retries,
            base_delay_seconds=settings.market_data_backoff_seconds,
            max_delay_seconds=settings.market_data_backoff_max_seconds,
            backoff_multiplier=settings.market_data_backoff_multiplier,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after the zero-based ``attempt`` failed."""
        delay = self.base_delay_seconds * (self.backoff_multiplier ** attempt)
        return min(delay, self.max_delay_seconds)


class RetryPolicy:
    """
    Executes an idempotent HTTP call up to ``max_retries + 1`` times.

    Rate limiting (429), server errors (5xx) and transport failures are retried
    with exponential backoff. Other request errors (an undecodable body, too many
    redirects) and any other non-2xx status fail immediately. On exhaustion the
    last observed error is raised.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or RetryConfig()
        self._sleep = sleep or asyncio.sleep
        self._logger = logger or logging.getLogger("solwatch.market_data.retry")

    @property
    def config(self) -> RetryConfig:
        return self._config

    async def execute(self, label: str, send: Callable[[], Awaitable[httpx.Response]]) -> Any:
        total_attempts = self._config.max_retries + 1
        last_error: RemoteAPIError | None = None
        last_cause: BaseException | None = None

        for attempt in range(total_attempts):
            reason: RetryReason
            try:
                response = await send()
            except httpx.TransportError as exc:
                last_error = TransientUpstreamError(f"{label} transport failure: {exc}", endpoint=label)
                last_cause = exc
                reason = "transport"
            except httpx.RequestError as exc:
                raise RemoteAPIError(f"{label} request failed: {exc}", endpoint=label) from exc
            else:
                if response.is_success:
                    return self._decode(label, response)
                error = self._classify(label, response)
                if isinstance(error, ClientRequestError):
                    raise error
                last_error = error
                last_cause = None
                reason = "rate_limited" if response.status_code == 429 else "server_error"

            if attempt >= self._config.max_retries:
                break
            delay = self._config.delay_for(attempt)
            self._logger.warning(
                "%s failed (%s, attempt %s/%s): %s; retrying in %.2fs",
                label,
                reason,
                attempt + 1,
                total_attempts,
                last_error,
                delay,
            )
            record_upstream_retry(reason)
            await self._sleep(delay)

        if last_error is None:  # pragma: no cover - loop always runs at least once
            raise RemoteAPIError(f"{label} failed without a response", endpoint=label)
        self._logger.error("%s gave up after %s attempts: %s", label, total_attempts, last_error)
        raise last_error from last_cause

    @staticmethod
    def _classify(label: str, response: httpx.Response) -> RemoteAPIError:
        status = response.status_code
        message = f"{label} upstream error: {status} {response.reason_phrase}"
        if status == 429 or status >= 500:
            return TransientUpstreamError(message, status_code=status, endpoint=label)
        return ClientRequestError(message, status_code=status, endpoint=label)

    @staticmethod
    def _decode(label: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteAPIError(
                f"{label} returned a non-JSON body",
                status_code=response.status_code,
                endpoint=label,
            ) from exc


__all__ = [
    "ClientRequestError",
    "RemoteAPIError",
    "RetryConfig",
    "RetryPolicy",
    "RetryReason",
    "TransientUpstreamError",
]
