from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Mapping, Sequence, Union

LAMPORTS_PER_SOL = 1_000_000_000
MINT_ADDRESS_LENGTH = 44


class MonitorState(str, Enum):
    STOPPED = "stopped"
    MONITORING = "monitoring"


@dataclass(frozen=True, slots=True)
class LogNotification:
    """One ``logsNotification`` pushed by the ledger subscription."""

    signature: str
    logs: tuple[str, ...]
    err: Any | None = None
    slot: int | None = None


@dataclass(frozen=True, slots=True)
class LaunchEvent:
    signature: str
    kind: Literal["launch"] = "launch"


@dataclass(frozen=True, slots=True)
class TradeEvent:
    signature: str
    kind: Literal["trade"] = "trade"


@dataclass(frozen=True, slots=True)
class IgnoredEvent:
    signature: str
    kind: Literal["ignored"] = "ignored"


ClassifiedEvent = Union[LaunchEvent, TradeEvent, IgnoredEvent]


@dataclass(slots=True)
class TokenLaunch:
    token_mint: str
    creator: str
    timestamp: float
    signature: str
    name: str | None = None
    symbol: str | None = None
    uri: str | None = None


@dataclass(slots=True)
class TradeActivity:
    token_mint: str
    trader: str
    is_buy: bool
    sol_amount: float
    token_amount: float
    price: float
    timestamp: float
    signature: str


@dataclass(slots=True)
class MonitorStats:
    total_tokens_launched: int = 0
    total_trades: int = 0
    recent_trades: int = 0
    hourly_buy_volume: float = 0.0
    hourly_sell_volume: float = 0.0
    total_hourly_volume: float = 0.0


@dataclass(frozen=True, slots=True)
class AccountKey:
    pubkey: str
    signer: bool = False
    writable: bool = False


@dataclass(frozen=True, slots=True)
class TokenBalance:
    account_index: int
    mint: str
    ui_amount: float | None
    owner: str | None = None


def _ui_amount(raw: Mapping[str, Any] | None) -> float | None:
    if not raw:
        return None
    value = raw.get("uiAmount")
    if value is None:
        value = raw.get("uiAmountString")
    if value is None:
        return None
    return float(value)


def _token_balances(entries: Sequence[Mapping[str, Any]] | None) -> tuple[TokenBalance, ...]:
    balances = []
    for entry in entries or []:
        balances.append(
            TokenBalance(
                account_index=int(entry["accountIndex"]),
                mint=str(entry.get("mint") or ""),
                ui_amount=_ui_amount(entry.get("uiTokenAmount")),
                owner=entry.get("owner"),
            )
        )
    return tuple(balances)


def _account_keys(message: Mapping[str, Any]) -> tuple[AccountKey, ...]:
    raw_keys = message.get("accountKeys") or []
    required_signers = int((message.get("header") or {}).get("numRequiredSignatures", 0))
    keys = []
    for index, raw in enumerate(raw_keys):
        if isinstance(raw, str):
            # "json" encoding: signers are the leading keys per the message header
            keys.append(AccountKey(pubkey=raw, signer=index < required_signers))
        else:
            keys.append(
                AccountKey(
                    pubkey=str(raw["pubkey"]),
                    signer=bool(raw.get("signer", False)),
                    writable=bool(raw.get("writable", False)),
                )
            )
    return tuple(keys)


@dataclass(frozen=True, slots=True)
class ConfirmedTransaction:
    """The parts of a ``getTransaction`` result the parser relies on."""

    signature: str
    account_keys: tuple[AccountKey, ...]
    pre_balances: tuple[int, ...] = ()
    post_balances: tuple[int, ...] = ()
    pre_token_balances: tuple[TokenBalance, ...] = ()
    post_token_balances: tuple[TokenBalance, ...] = ()
    slot: int | None = None
    block_time: int | None = None
    err: Any | None = None
    log_messages: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_rpc(cls, signature: str, result: Mapping[str, Any]) -> "ConfirmedTransaction":
        """
        Build from a ``getTransaction`` result (``jsonParsed`` or ``json`` encoding).

        Raises ``KeyError``/``TypeError``/``ValueError`` when the payload does not
        have the expected shape.
        """

        if not isinstance(result, Mapping):
            raise TypeError("transaction result must be an object")
        meta = result.get("meta")
        transaction = result.get("transaction")
        if not isinstance(meta, Mapping) or not isinstance(transaction, Mapping):
            raise ValueError("transaction result is missing meta or transaction")
        message = transaction.get("message")
        if not isinstance(message, Mapping):
            raise ValueError("transaction is missing its message")
        return cls(
            signature=signature,
            account_keys=_account_keys(message),
            pre_balances=tuple(int(value) for value in meta.get("preBalances") or []),
            post_balances=tuple(int(value) for value in meta.get("postBalances") or []),
            pre_token_balances=_token_balances(meta.get("preTokenBalances")),
            post_token_balances=_token_balances(meta.get("postTokenBalances")),
            slot=result.get("slot"),
            block_time=result.get("blockTime"),
            err=meta.get("err"),
            log_messages=tuple(meta.get("logMessages") or []),
        )

    def first_signer_index(self) -> int | None:
        for index, key in enumerate(self.account_keys):
            if key.signer:
                return index
        return None


__all__ = [
    "AccountKey",
    "ClassifiedEvent",
    "ConfirmedTransaction",
    "IgnoredEvent",
    "LAMPORTS_PER_SOL",
    "LaunchEvent",
    "LogNotification",
    "MINT_ADDRESS_LENGTH",
    "MonitorState",
    "MonitorStats",
    "TokenBalance",
    "TokenLaunch",
    "TradeActivity",
    "TradeEvent",
]
