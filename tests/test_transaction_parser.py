import pytest

from solwatch_service.monitor import decode_transaction, parse_launch, parse_trade
from solwatch_service.monitor.models import ConfirmedTransaction
from utils.solana_fakes import CREATOR, MINT, TRADER, launch_transaction, trade_transaction


def _decode(signature, payload) -> ConfirmedTransaction:
    result = decode_transaction(signature, payload)
    assert result.ok, result.error
    return result.value


def test_parse_trade_buy():
    tx = _decode("sig-1", trade_transaction(sol_delta_lamports=-50_000_000, token_before=0.0, token_after=500.0))

    result = parse_trade(tx, "sig-1", timestamp=123.0)

    assert result.ok
    trade = result.value
    assert trade.is_buy is True
    assert trade.trader == TRADER
    assert trade.token_mint == MINT
    assert trade.sol_amount == pytest.approx(0.05)
    assert trade.token_amount == pytest.approx(500.0)
    assert trade.price == pytest.approx(0.0001)
    assert trade.timestamp == 123.0
    assert trade.signature == "sig-1"


def test_parse_trade_sell():
    tx = _decode("sig-2", trade_transaction(sol_delta_lamports=30_000_000, token_before=1500.0, token_after=500.0))

    trade = parse_trade(tx, "sig-2").value

    assert trade.is_buy is False
    assert trade.sol_amount == pytest.approx(0.03)
    assert trade.token_amount == pytest.approx(1000.0)


def test_parse_trade_missing_pre_balance_counts_from_zero():
    tx = _decode("sig-3", trade_transaction(sol_delta_lamports=-20_000_000, token_before=None, token_after=1000.0))

    trade = parse_trade(tx, "sig-3").value

    assert trade.token_amount == pytest.approx(1000.0)
    assert trade.price == pytest.approx(0.00002)


def test_parse_trade_without_sol_movement_fails():
    tx = _decode("sig-4", trade_transaction(sol_delta_lamports=0, token_before=0.0, token_after=10.0))

    result = parse_trade(tx, "sig-4")

    assert not result.ok
    assert result.error == "no SOL movement"


def test_parse_trade_without_token_change_fails():
    tx = _decode("sig-5", trade_transaction(sol_delta_lamports=-1_000_000, token_before=10.0, token_after=10.0))

    result = parse_trade(tx, "sig-5")

    assert not result.ok
    assert result.error == "no token balance change"


def test_parse_launch_uses_first_token_balance_mint():
    tx = _decode("sig-launch", launch_transaction())

    launch = parse_launch(tx, "sig-launch", timestamp=5.0).value

    assert launch.token_mint == MINT
    assert launch.creator == CREATOR
    assert launch.timestamp == 5.0


def test_parse_launch_falls_back_to_mint_length_account():
    tx = _decode("sig-launch", launch_transaction(with_token_balances=False))

    launch = parse_launch(tx, "sig-launch").value

    assert launch.token_mint == MINT


def test_parse_launch_without_mint_candidate_fails():
    payload = launch_transaction(with_token_balances=False)
    payload["transaction"]["message"]["accountKeys"][1]["pubkey"] = "short"

    result = parse_launch(_decode("sig-x", payload), "sig-x")

    assert not result.ok


def test_decode_missing_transaction():
    result = decode_transaction("sig-missing", None)

    assert not result.ok
    assert result.error == "transaction not found"


def test_decode_malformed_transaction():
    result = decode_transaction("sig-bad", {"meta": {}, "transaction": "garbage"})

    assert not result.ok
    assert result.error.startswith("malformed transaction")


def test_decode_json_encoding_uses_header_signers():
    payload = {
        "slot": 1,
        "transaction": {
            "message": {
                "header": {"numRequiredSignatures": 1},
                "accountKeys": [TRADER, MINT],
            }
        },
        "meta": {"preBalances": [10, 0], "postBalances": [5, 0]},
    }

    tx = _decode("sig-json", payload)

    assert tx.first_signer_index() == 0
    assert tx.account_keys[1].signer is False
