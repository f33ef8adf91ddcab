from solwatch_service.monitor import IgnoredEvent, LaunchEvent, TradeEvent, classify_logs, is_token_launch, is_trade_activity
from utils.solana_fakes import BUY_LOGS, CREATE_LOGS, PROGRAM_ID, SELL_LOGS


def test_buy_and_sell_logs_classify_as_trades():
    assert classify_logs("sig-buy", BUY_LOGS) == (TradeEvent("sig-buy"),)
    assert classify_logs("sig-sell", SELL_LOGS) == (TradeEvent("sig-sell"),)


def test_trade_event_marker_alone_counts_as_trade():
    logs = ["Program data: vdt/007mYe...", "Program log: TradeEvent emitted"]

    assert is_trade_activity(logs)
    assert not is_token_launch(logs)


def test_create_logs_classify_as_launch():
    events = classify_logs("sig-create", CREATE_LOGS)

    assert events == (LaunchEvent("sig-create"),)
    assert events[0].kind == "launch"


def test_create_and_buy_in_one_transaction_yields_both_events():
    logs = CREATE_LOGS + ("Program log: Instruction: Buy",)

    events = classify_logs("sig-both", logs)

    assert [event.kind for event in events] == ["launch", "trade"]


def test_unrelated_logs_are_ignored():
    logs = [f"Program {PROGRAM_ID} invoke [1]", "Program log: Instruction: SetParams"]

    assert classify_logs("sig-other", logs) == (IgnoredEvent("sig-other"),)
    assert classify_logs("sig-empty", []) == (IgnoredEvent("sig-empty"),)
