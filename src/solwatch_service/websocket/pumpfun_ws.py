from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, Set

from fastapi import WebSocket

from ..api.routes import _to_camel_case
from ..monitor.alerts import TradeAlert
from ..monitor.models import TokenLaunch, TradeActivity


def _camel_payload(item: Any) -> Dict[str, Any]:
    return {_to_camel_case(key): value for key, value in asdict(item).items()}


class ConnectionManager:
    """Tracks dashboard WebSocket clients and relays monitor events to them."""

    def __init__(self) -> None:
        self.active_connections: Set[WebSocket] = set()
        self.logger = logging.getLogger("solwatch.websocket.pumpfun")

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.add(websocket)
        self.logger.info("Client connected (total=%s)", len(self.active_connections))

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.discard(websocket)
            self.logger.info("Client disconnected (total=%s)", len(self.active_connections))

    async def broadcast_launch(self, launch: TokenLaunch) -> None:
        await self._broadcast("token_launch", _camel_payload(launch))

    async def broadcast_trade(self, trade: TradeActivity) -> None:
        await self._broadcast("trade", _camel_payload(trade))

    async def broadcast_alert(self, alert: TradeAlert) -> None:
        payload = _camel_payload(alert)
        payload["direction"] = alert.direction
        await self._broadcast("alert", payload)

    async def _broadcast(self, message_type: str, data: Dict[str, Any]) -> None:
        if not self.active_connections:
            return
        message = {
            "type": message_type,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        disconnected: Set[WebSocket] = set()
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except Exception as exc:  # pragma: no cover - network failure path
                self.logger.warning("Failed to send %s event: %s", message_type, exc)
                disconnected.add(connection)
        for connection in disconnected:
            self.disconnect(connection)

    async def send_personal_message(self, message: Dict[str, Any], websocket: WebSocket) -> None:
        try:
            await websocket.send_json(message)
        except Exception as exc:  # pragma: no cover - network failure path
            self.logger.error("Failed to send message to client: %s", exc)


__all__ = ["ConnectionManager"]
