from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, List, Literal

from ..config import Settings, get_settings
from .models import TradeActivity

AlertKind = Literal["high_volume", "price_movement"]
TradeLookup = Callable[[str, int], List[TradeActivity]]
AlertNotifier = Callable[["TradeAlert"], Awaitable[None]]


@dataclass(slots=True)
class AlertThresholds:
    volume_sol: float = 2.0
    price_change: float = 0.2
    history_size: int = 100

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AlertThresholds":
        settings = settings or get_settings()
        return cls(
            volume_sol=settings.alert_volume_threshold_sol,
            price_change=settings.alert_price_change_threshold,
            history_size=settings.alert_history_size,
        )


@dataclass(slots=True)
class TradeAlert:
    kind: AlertKind
    token_mint: str
    signature: str
    timestamp: float
    sol_amount: float
    price: float
    previous_price: float | None = None
    change: float | None = None

    @property
    def direction(self) -> str | None:
        if self.change is None:
            return None
        return "up" if self.change > 0 else "down"


class ThresholdAlerter:
    """
    Trade observer that flags large trades and sharp price moves.

    A price move is measured against the previous trade of the same mint, read
    back from the monitor history, so the observer has to run after the trade
    has been recorded.
    """

    def __init__(
        self,
        trade_lookup: TradeLookup,
        thresholds: AlertThresholds | None = None,
        *,
        notifier: AlertNotifier | None = None,
    ) -> None:
        self._trade_lookup = trade_lookup
        self._thresholds = thresholds or AlertThresholds.from_settings()
        self._notifier = notifier
        self._history: Deque[TradeAlert] = deque(maxlen=self._thresholds.history_size)
        self._logger = logging.getLogger("solwatch.monitor.alerts")

    @property
    def thresholds(self) -> AlertThresholds:
        return self._thresholds

    def set_notifier(self, notifier: AlertNotifier | None) -> None:
        self._notifier = notifier

    async def __call__(self, trade: TradeActivity) -> None:
        for alert in self.evaluate(trade):
            self._history.append(alert)
            if self._notifier is not None:
                try:
                    await self._notifier(alert)
                except Exception as exc:
                    self._logger.warning("Alert notifier failed: %s", exc)

    def evaluate(self, trade: TradeActivity) -> List[TradeAlert]:
        alerts: List[TradeAlert] = []
        if trade.sol_amount >= self._thresholds.volume_sol:
            self._logger.warning(
                "HIGH VOLUME ALERT: %.2f SOL %s on %s",
                trade.sol_amount,
                "buy" if trade.is_buy else "sell",
                trade.token_mint,
            )
            alerts.append(
                TradeAlert(
                    kind="high_volume",
                    token_mint=trade.token_mint,
                    signature=trade.signature,
                    timestamp=trade.timestamp,
                    sol_amount=trade.sol_amount,
                    price=trade.price,
                )
            )

        recent = self._trade_lookup(trade.token_mint, 2)
        if len(recent) >= 2 and recent[0].signature == trade.signature:
            previous_price = recent[1].price
            if previous_price > 0:
                change = (trade.price - previous_price) / previous_price
                if abs(change) >= self._thresholds.price_change:
                    self._logger.warning(
                        "PRICE MOVEMENT %s: %.2f%% on %s",
                        "UP" if change > 0 else "DOWN",
                        abs(change) * 100,
                        trade.token_mint,
                    )
                    alerts.append(
                        TradeAlert(
                            kind="price_movement",
                            token_mint=trade.token_mint,
                            signature=trade.signature,
                            timestamp=trade.timestamp,
                            sol_amount=trade.sol_amount,
                            price=trade.price,
                            previous_price=previous_price,
                            change=change,
                        )
                    )
        return alerts

    def recent_alerts(self, limit: int | None = None) -> List[TradeAlert]:
        """Newest first."""
        alerts = list(reversed(self._history))
        return alerts if limit is None else alerts[:limit]

    def clear(self) -> None:
        self._history.clear()


__all__ = ["AlertKind", "AlertThresholds", "ThresholdAlerter", "TradeAlert"]
