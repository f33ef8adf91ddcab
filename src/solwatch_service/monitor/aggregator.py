from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Iterable, List, Sequence

from ..config import Settings, get_settings
from ..observability import record_monitor_event, record_parse_failure, update_monitor_state
from .classifier import classify_logs
from .feed import LogFeed, LogSubscription
from .ledger import TransactionSource
from .models import (
    LaunchEvent,
    LogNotification,
    MonitorState,
    MonitorStats,
    TokenLaunch,
    TradeActivity,
    TradeEvent,
)
from .parser import decode_transaction, parse_launch, parse_trade

PUMPFUN_PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"

TradeObserver = Callable[[TradeActivity], Any]
LaunchObserver = Callable[[TokenLaunch], Any]


@dataclass(slots=True)
class MonitorConfig:
    program_id: str = PUMPFUN_PROGRAM_ID
    max_trade_history: int = 1000
    stats_window_seconds: float = 3600.0
    max_concurrent_fetches: int = 8

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "MonitorConfig":
        settings = settings or get_settings()
        return cls(
            program_id=settings.pumpfun_program_id,
            max_trade_history=settings.monitor_max_trade_history,
            stats_window_seconds=settings.monitor_stats_window_seconds,
            max_concurrent_fetches=settings.monitor_max_concurrent_fetches,
        )


@dataclass(slots=True)
class MonitorStatus:
    state: MonitorState
    program_id: str
    started_at: float | None = None
    stopped_at: float | None = None
    last_error: str | None = None
    events_received: int = 0
    events_ignored: int = 0
    launches_detected: int = 0
    trades_detected: int = 0
    parse_failures: int = 0


class MonitorAggregator:
    """
    Rolling view of pump.fun launches and trades fed by a log subscription.

    ``start()`` opens the subscription and ``stop()`` tears it down; both are
    no-ops when already in the target state. Each notification is classified,
    the full transaction is fetched and parsed in a background task (at most
    ``max_concurrent_fetches`` ledger reads run at once), and the
    result updates the launch map or the bounded trade history. Failures in
    that path are logged and dropped so the subscription keeps running.
    """

    def __init__(
        self,
        feed: LogFeed,
        ledger: TransactionSource,
        config: MonitorConfig | None = None,
        *,
        clock: Callable[[], float] | None = None,
        trade_observers: Iterable[TradeObserver] = (),
        launch_observers: Iterable[LaunchObserver] = (),
    ) -> None:
        self._feed = feed
        self._ledger = ledger
        self._config = config or MonitorConfig.from_settings()
        self._clock = clock or time.time
        self._logger = logging.getLogger("solwatch.monitor.aggregator")
        self._state = MonitorState.STOPPED
        self._subscription: LogSubscription | None = None
        self._lifecycle_lock = asyncio.Lock()
        self._inflight: set[asyncio.Task[None]] = set()
        self._fetch_slots = asyncio.Semaphore(max(1, self._config.max_concurrent_fetches))
        self._launches: Dict[str, TokenLaunch] = {}
        self._trades: Deque[TradeActivity] = deque(maxlen=self._config.max_trade_history)
        self._total_trades = 0
        self._trade_observers: List[TradeObserver] = list(trade_observers)
        self._launch_observers: List[LaunchObserver] = list(launch_observers)
        self._status = MonitorStatus(state=self._state, program_id=self._config.program_id)

    # Lifecycle

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def is_monitoring(self) -> bool:
        return self._state is MonitorState.MONITORING

    async def start(self) -> None:
        async with self._lifecycle_lock:
            if self._state is MonitorState.MONITORING:
                self._logger.info("Monitor is already running")
                return
            self._logger.info("Starting pump.fun monitor for program %s", self._config.program_id)
            try:
                self._subscription = await self._feed.subscribe(
                    self._config.program_id,
                    self._on_log,
                    self._on_subscription_error,
                )
            except Exception as exc:
                self._status.last_error = str(exc)
                self._logger.exception("Failed to start monitor: %s", exc)
                return
            self._set_state(MonitorState.MONITORING)
            self._status.started_at = self._clock()
            self._status.last_error = None
            self._logger.info("Monitor started")

    async def stop(self) -> None:
        async with self._lifecycle_lock:
            if self._state is MonitorState.STOPPED:
                return
            self._set_state(MonitorState.STOPPED)
            self._status.stopped_at = self._clock()
            subscription, self._subscription = self._subscription, None
            if subscription is not None:
                try:
                    await subscription.close()
                except Exception as exc:
                    self._logger.warning("Error while closing log subscription: %s", exc)
            self._logger.info("Monitor stopped")

    async def drain(self) -> None:
        """Wait for transaction fetches that were already in flight."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def shutdown(self) -> None:
        await self.stop()
        await self.drain()

    # Observers

    def add_trade_observer(self, observer: TradeObserver) -> None:
        self._trade_observers.append(observer)

    def add_launch_observer(self, observer: LaunchObserver) -> None:
        self._launch_observers.append(observer)

    # Event path

    async def _on_log(self, notification: LogNotification) -> None:
        if self._state is not MonitorState.MONITORING:
            return
        self._status.events_received += 1
        if notification.err is not None:
            self._status.events_ignored += 1
            record_monitor_event("ignored")
            self._logger.debug("Skipping failed transaction %s", notification.signature)
            return
        task = asyncio.create_task(self.process_notification(notification))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _on_subscription_error(self, exc: Exception) -> None:
        async with self._lifecycle_lock:
            if self._state is MonitorState.STOPPED:
                return
            self._logger.error("Log subscription lost, monitor stopped: %s", exc)
            self._set_state(MonitorState.STOPPED)
            self._status.stopped_at = self._clock()
            self._status.last_error = str(exc)
            subscription, self._subscription = self._subscription, None
        if subscription is not None:
            try:
                await subscription.close()
            except Exception as close_exc:
                self._logger.debug("Closing broken subscription failed: %s", close_exc)

    async def process_notification(self, notification: LogNotification) -> None:
        signature = notification.signature
        events = classify_logs(signature, notification.logs)
        is_launch = any(isinstance(event, LaunchEvent) for event in events)
        is_trade = any(isinstance(event, TradeEvent) for event in events)
        for event in events:
            record_monitor_event(event.kind)
        if not is_launch and not is_trade:
            self._status.events_ignored += 1
            return

        try:
            async with self._fetch_slots:
                raw = await self._ledger.get_transaction(signature)
        except Exception as exc:
            self._status.parse_failures += 1
            record_parse_failure("fetch")
            self._logger.warning("Could not fetch transaction %s: %s", signature, exc)
            return

        decoded = decode_transaction(signature, raw)
        if not decoded.ok:
            self._status.parse_failures += 1
            record_parse_failure("decode")
            self._logger.warning("Skipping %s: %s", signature, decoded.error)
            return
        transaction = decoded.value
        now = self._clock()

        if is_launch:
            launch = parse_launch(transaction, signature, timestamp=now)
            if launch.ok:
                self._record_launch(launch.value)
                await self._notify(self._launch_observers, launch.value)
            else:
                self._status.parse_failures += 1
                record_parse_failure("launch")
                self._logger.debug("No launch in %s: %s", signature, launch.error)

        if is_trade:
            trade = parse_trade(transaction, signature, timestamp=now)
            if trade.ok:
                self._record_trade(trade.value)
                await self._notify(self._trade_observers, trade.value)
            else:
                self._status.parse_failures += 1
                record_parse_failure("trade")
                self._logger.debug("No trade in %s: %s", signature, trade.error)

    def _record_launch(self, launch: TokenLaunch) -> None:
        self._launches[launch.token_mint] = launch
        self._status.launches_detected += 1
        self._logger.info(
            "New token launch: mint=%s creator=%s signature=%s",
            launch.token_mint,
            launch.creator,
            launch.signature,
        )

    def _record_trade(self, trade: TradeActivity) -> None:
        self._trades.append(trade)
        self._total_trades += 1
        self._status.trades_detected += 1
        update_monitor_state(monitoring=self.is_monitoring, trade_history_size=len(self._trades))
        self._logger.info(
            "%s %s: %.6f SOL for %s tokens (price=%.9f) trader=%s",
            "BUY" if trade.is_buy else "SELL",
            trade.token_mint,
            trade.sol_amount,
            f"{trade.token_amount:,.0f}",
            trade.price,
            trade.trader,
        )

    async def _notify(self, observers: Sequence[Callable[[Any], Any]], item: Any) -> None:
        for observer in list(observers):
            try:
                result = observer(item)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self._logger.exception("Monitor observer %r failed: %s", observer, exc)

    def _set_state(self, state: MonitorState) -> None:
        self._state = state
        self._status.state = state
        update_monitor_state(monitoring=state is MonitorState.MONITORING, trade_history_size=len(self._trades))

    # Read accessors

    def get_stats(self) -> MonitorStats:
        cutoff = self._clock() - self._config.stats_window_seconds
        window = [trade for trade in self._trades if trade.timestamp > cutoff]
        buy_volume = sum(trade.sol_amount for trade in window if trade.is_buy)
        sell_volume = sum(trade.sol_amount for trade in window if not trade.is_buy)
        return MonitorStats(
            total_tokens_launched=len(self._launches),
            total_trades=self._total_trades,
            recent_trades=len(window),
            hourly_buy_volume=buy_volume,
            hourly_sell_volume=sell_volume,
            total_hourly_volume=buy_volume + sell_volume,
        )

    def get_recent_launches(self, limit: int = 10) -> List[TokenLaunch]:
        newest_first = reversed(list(self._launches.values()))
        return sorted(newest_first, key=lambda launch: launch.timestamp, reverse=True)[:limit]

    def get_token_trades(self, token_mint: str, limit: int = 50) -> List[TradeActivity]:
        matches: List[TradeActivity] = []
        for trade in reversed(self._trades):
            if trade.token_mint != token_mint:
                continue
            matches.append(trade)
            if len(matches) >= limit:
                break
        return matches

    def get_all_recent_trades(self) -> List[TradeActivity]:
        return list(self._trades)

    def get_token_launches(self) -> Dict[str, TokenLaunch]:
        return dict(self._launches)

    def status(self) -> MonitorStatus:
        return self._status


__all__ = [
    "LaunchObserver",
    "MonitorAggregator",
    "MonitorConfig",
    "MonitorStatus",
    "PUMPFUN_PROGRAM_ID",
    "TradeObserver",
]
