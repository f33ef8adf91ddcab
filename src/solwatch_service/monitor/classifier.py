from __future__ import annotations

from typing import Iterable, Sequence

from .models import ClassifiedEvent, IgnoredEvent, LaunchEvent, TradeEvent

LAUNCH_MARKERS: tuple[str, ...] = (
    "Program log: Instruction: InitializeMint2",
    "Program log: Instruction: Create",
)
TRADE_MARKERS: tuple[str, ...] = (
    "Program log: Instruction: Buy",
    "Program log: Instruction: Sell",
    "TradeEvent",
)


def _matches_any(logs: Iterable[str], markers: Sequence[str]) -> bool:
    return any(marker in line for line in logs for marker in markers)


def is_token_launch(logs: Sequence[str]) -> bool:
    return _matches_any(logs, LAUNCH_MARKERS)


def is_trade_activity(logs: Sequence[str]) -> bool:
    return _matches_any(logs, TRADE_MARKERS)


def classify_logs(signature: str, logs: Sequence[str]) -> tuple[ClassifiedEvent, ...]:
    """
    Classify one transaction from its program log lines.

    Launch and trade checks are independent: a create-and-buy transaction
    yields both events, in that order. Anything else yields a single
    ``IgnoredEvent``.
    """

    events: list[ClassifiedEvent] = []
    if is_token_launch(logs):
        events.append(LaunchEvent(signature))
    if is_trade_activity(logs):
        events.append(TradeEvent(signature))
    if not events:
        events.append(IgnoredEvent(signature))
    return tuple(events)


__all__ = ["LAUNCH_MARKERS", "TRADE_MARKERS", "classify_logs", "is_token_launch", "is_trade_activity"]
