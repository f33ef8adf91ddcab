from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Awaitable, Callable, Mapping, Protocol

import websockets
from websockets.exceptions import ConnectionClosed

from ..config import Settings, get_settings
from .models import LogNotification

LogHandler = Callable[[LogNotification], Awaitable[None]]
ErrorHandler = Callable[[Exception], Awaitable[None]]


class SubscriptionError(RuntimeError):
    """The log subscription was lost; the monitor has to be restarted explicitly."""


class LogSubscription(Protocol):
    async def close(self) -> None:
        ...


class LogFeed(Protocol):
    async def subscribe(self, program_id: str, on_event: LogHandler, on_error: ErrorHandler) -> LogSubscription:
        ...


def parse_log_notification(message: Mapping[str, Any]) -> LogNotification | None:
    """Turn a ``logsNotification`` frame into a ``LogNotification``; other frames give None."""
    if message.get("method") != "logsNotification":
        return None
    result = (message.get("params") or {}).get("result") or {}
    value = result.get("value") or {}
    signature = value.get("signature")
    logs = value.get("logs")
    if not signature or logs is None:
        return None
    slot = (result.get("context") or {}).get("slot")
    return LogNotification(signature=signature, logs=tuple(logs), err=value.get("err"), slot=slot)


class WebSocketLogSubscription:
    """Reader task for one ``logsSubscribe`` stream."""

    def __init__(
        self,
        ws: Any,
        *,
        request_id: int,
        on_event: LogHandler,
        on_error: ErrorHandler,
        logger: logging.Logger,
    ) -> None:
        self._ws = ws
        self._request_id = request_id
        self._on_event = on_event
        self._on_error = on_error
        self._logger = logger
        self._subscription_id: int | None = None
        self._closing = False
        self._task: asyncio.Task[None] | None = None
        self.messages_received = 0

    @property
    def subscription_id(self) -> int | None:
        return self._subscription_id

    def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="pumpfun-log-subscription")

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        if self._subscription_id is not None:
            try:
                await self._ws.send(
                    json.dumps(
                        {
                            "jsonrpc": "2.0",
                            "id": self._request_id + 1,
                            "method": "logsUnsubscribe",
                            "params": [self._subscription_id],
                        }
                    )
                )
            except ConnectionClosed:
                pass
        await self._ws.close()
        if self._task and not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:  # pragma: no cover - expected on shutdown
                pass
        self._logger.info("Log subscription %s closed", self._subscription_id)

    async def _run(self) -> None:
        try:
            async for raw in self._ws:
                await self.handle_message(raw)
            if not self._closing:
                await self._on_error(SubscriptionError("log subscription closed by the server"))
        except ConnectionClosed as exc:
            if not self._closing:
                self._logger.warning("Log subscription connection closed: %s", exc)
                await self._on_error(SubscriptionError(f"connection closed: {exc}"))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not self._closing:
                self._logger.exception("Log subscription failed: %s", exc)
                await self._on_error(SubscriptionError(str(exc)))

    async def handle_message(self, raw: str | bytes) -> None:
        self.messages_received += 1
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            self._logger.debug("Ignoring non-JSON frame")
            return
        if not isinstance(message, dict):
            return
        if message.get("id") == self._request_id:
            if "error" in message:
                raise SubscriptionError(f"logsSubscribe rejected: {message['error']}")
            self._subscription_id = message.get("result")
            self._logger.info("Log subscription confirmed (id=%s)", self._subscription_id)
            return
        notification = parse_log_notification(message)
        if notification is None:
            return
        try:
            await self._on_event(notification)
        except Exception as exc:
            self._logger.exception("Log handler failed for %s: %s", notification.signature, exc)


class WebSocketLogFeed:
    """Solana ``logsSubscribe`` feed filtered by a program mention."""

    def __init__(
        self,
        ws_url: str,
        *,
        commitment: str = "confirmed",
        ping_interval: float = 30.0,
        connect: Callable[..., Awaitable[Any]] | None = None,
    ) -> None:
        self._ws_url = ws_url
        self._commitment = commitment
        self._ping_interval = ping_interval
        self._connect = connect or websockets.connect
        self._request_ids = itertools.count(1, 2)
        self._logger = logging.getLogger("solwatch.monitor.feed")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "WebSocketLogFeed":
        settings = settings or get_settings()
        return cls(
            settings.solana_ws_url,
            commitment=settings.solana_commitment,
            ping_interval=settings.solana_ws_ping_interval_seconds,
        )

    async def subscribe(self, program_id: str, on_event: LogHandler, on_error: ErrorHandler) -> WebSocketLogSubscription:
        self._logger.info("Connecting to log feed %s", self._ws_url)
        ws = await self._connect(
            self._ws_url,
            ping_interval=self._ping_interval,
            ping_timeout=10,
            close_timeout=5,
        )
        request_id = next(self._request_ids)
        try:
            await ws.send(
                json.dumps(
                    {
                        "jsonrpc": "2.0",
                        "id": request_id,
                        "method": "logsSubscribe",
                        "params": [
                            {"mentions": [program_id]},
                            {"commitment": self._commitment},
                        ],
                    },
                    separators=(",", ":"),
                )
            )
        except Exception:
            await ws.close()
            raise
        subscription = WebSocketLogSubscription(
            ws,
            request_id=request_id,
            on_event=on_event,
            on_error=on_error,
            logger=self._logger,
        )
        subscription.start()
        return subscription


__all__ = [
    "ErrorHandler",
    "LogFeed",
    "LogHandler",
    "LogSubscription",
    "SubscriptionError",
    "WebSocketLogFeed",
    "WebSocketLogSubscription",
    "parse_log_notification",
]
