"""
pump.fun activity monitor: log classification, transaction parsing and the
rolling aggregate served to the dashboard.
"""

from .aggregator import MonitorAggregator, MonitorConfig, MonitorStatus, PUMPFUN_PROGRAM_ID
from .alerts import AlertThresholds, ThresholdAlerter, TradeAlert
from .classifier import classify_logs, is_token_launch, is_trade_activity
from .feed import LogFeed, LogSubscription, SubscriptionError, WebSocketLogFeed, parse_log_notification
from .ledger import LedgerReadError, SolanaRpcClient, SolanaRpcConfig, TransactionSource
from .models import (
    ConfirmedTransaction,
    IgnoredEvent,
    LaunchEvent,
    LogNotification,
    MonitorState,
    MonitorStats,
    TokenLaunch,
    TradeActivity,
    TradeEvent,
)
from .parser import ParseResult, decode_transaction, parse_launch, parse_trade

__all__ = [
    "AlertThresholds",
    "ConfirmedTransaction",
    "IgnoredEvent",
    "LaunchEvent",
    "LedgerReadError",
    "LogFeed",
    "LogNotification",
    "LogSubscription",
    "MonitorAggregator",
    "MonitorConfig",
    "MonitorState",
    "MonitorStats",
    "MonitorStatus",
    "PUMPFUN_PROGRAM_ID",
    "ParseResult",
    "SolanaRpcClient",
    "SolanaRpcConfig",
    "SubscriptionError",
    "ThresholdAlerter",
    "TokenLaunch",
    "TradeActivity",
    "TradeAlert",
    "TradeEvent",
    "TransactionSource",
    "WebSocketLogFeed",
    "classify_logs",
    "decode_transaction",
    "is_token_launch",
    "is_trade_activity",
    "parse_launch",
    "parse_log_notification",
    "parse_trade",
]
