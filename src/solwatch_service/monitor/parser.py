from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Generic, Mapping, TypeVar

from .models import (
    LAMPORTS_PER_SOL,
    MINT_ADDRESS_LENGTH,
    ConfirmedTransaction,
    TokenLaunch,
    TradeActivity,
)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ParseResult(Generic[T]):
    """Either a parsed value or the reason nothing could be extracted."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    @classmethod
    def success(cls, value: T) -> "ParseResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult[T]":
        return cls(error=error)


def decode_transaction(signature: str, payload: Mapping[str, Any] | None) -> ParseResult[ConfirmedTransaction]:
    if payload is None:
        return ParseResult.failure("transaction not found")
    try:
        return ParseResult.success(ConfirmedTransaction.from_rpc(signature, payload))
    except (KeyError, TypeError, ValueError) as exc:
        return ParseResult.failure(f"malformed transaction: {exc}")


def _initiator_index(transaction: ConfirmedTransaction) -> int:
    index = transaction.first_signer_index()
    return 0 if index is None else index


def parse_launch(
    transaction: ConfirmedTransaction,
    signature: str,
    *,
    timestamp: float | None = None,
) -> ParseResult[TokenLaunch]:
    """
    Extract a token launch.

    The creator is the first signer. The mint comes from the first post-balance
    token entry; without one, the first non-signer key of mint length is used.
    """

    keys = transaction.account_keys
    if not keys:
        return ParseResult.failure("transaction has no account keys")
    creator = keys[_initiator_index(transaction)].pubkey

    token_mint = next((balance.mint for balance in transaction.post_token_balances if balance.mint), "")
    if not token_mint:
        token_mint = next(
            (key.pubkey for key in keys if not key.signer and len(key.pubkey) == MINT_ADDRESS_LENGTH),
            "",
        )
    if not token_mint:
        return ParseResult.failure("no mint account found")

    return ParseResult.success(
        TokenLaunch(
            token_mint=token_mint,
            creator=creator,
            timestamp=time.time() if timestamp is None else timestamp,
            signature=signature,
        )
    )


def parse_trade(
    transaction: ConfirmedTransaction,
    signature: str,
    *,
    timestamp: float | None = None,
) -> ParseResult[TradeActivity]:
    """
    Extract a bonding-curve trade.

    Direction and SOL size come from the trader's native balance delta (spent
    SOL means a buy). Token side comes from the first token account whose
    balance moved; a missing pre-balance entry counts as zero.
    """

    keys = transaction.account_keys
    if not keys:
        return ParseResult.failure("transaction has no account keys")
    trader_index = _initiator_index(transaction)
    trader = keys[trader_index].pubkey

    sol_amount = 0.0
    is_buy = False
    if len(transaction.pre_balances) > trader_index and len(transaction.post_balances) > trader_index:
        delta = transaction.post_balances[trader_index] - transaction.pre_balances[trader_index]
        sol_amount = abs(delta) / LAMPORTS_PER_SOL
        is_buy = delta < 0

    pre_by_index = {balance.account_index: balance for balance in transaction.pre_token_balances}
    token_mint = ""
    token_amount = 0.0
    for post in transaction.post_token_balances:
        if not post.mint:
            continue
        pre = pre_by_index.get(post.account_index)
        before = pre.ui_amount if pre is not None and pre.ui_amount is not None else 0.0
        change = (post.ui_amount or 0.0) - before
        if change != 0:
            token_mint = post.mint
            token_amount = abs(change)
            break

    if not token_mint:
        return ParseResult.failure("no token balance change")
    if sol_amount == 0:
        return ParseResult.failure("no SOL movement")

    price = sol_amount / token_amount if token_amount > 0 else 0.0
    return ParseResult.success(
        TradeActivity(
            token_mint=token_mint,
            trader=trader,
            is_buy=is_buy,
            sol_amount=sol_amount,
            token_amount=token_amount,
            price=price,
            timestamp=time.time() if timestamp is None else timestamp,
            signature=signature,
        )
    )


__all__ = ["ParseResult", "decode_transaction", "parse_launch", "parse_trade"]
