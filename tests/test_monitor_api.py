import asyncio

from fastapi.testclient import TestClient

from utils.app_helpers import build_app
from utils.solana_fakes import (
    CREATE_LOGS,
    FakeClock,
    FakeLedger,
    FakeLogFeed,
    MINT,
    launch_transaction,
    notification,
    trade_transaction,
)

BASE = "/internal/solwatch/v1"


def _populated_app():
    ledger = FakeLedger(
        {
            "launch": launch_transaction(),
            "buy": trade_transaction(sol_delta_lamports=-20_000_000, token_before=0.0, token_after=1000.0),
            "whale": trade_transaction(sol_delta_lamports=-5_000_000_000, token_before=0.0, token_after=1000.0),
        }
    )
    app = build_app(ledger=ledger, clock=FakeClock())
    monitor = app.state.monitor

    async def feed_events():
        await monitor.process_notification(notification("launch", logs=CREATE_LOGS))
        await monitor.process_notification(notification("buy"))
        await monitor.process_notification(notification("whale"))

    asyncio.run(feed_events())
    return app


def test_pumpfun_snapshot_uses_camel_case():
    client = TestClient(_populated_app())

    response = client.get(f"{BASE}/pumpfun")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["isMonitoring"] is False
    assert body["stats"]["totalTokensLaunched"] == 1
    assert body["stats"]["totalTrades"] == 2
    assert body["recentLaunches"][0]["tokenMint"] == MINT
    assert [trade["signature"] for trade in body["recentTrades"]] == ["buy", "whale"]
    assert body["recentTrades"][0]["isBuy"] is True


def test_pumpfun_snapshot_failure_returns_zeroed_payload(monkeypatch):
    app = build_app()

    def boom():
        raise RuntimeError("state unavailable")

    monkeypatch.setattr(app.state.monitor, "get_stats", boom)
    client = TestClient(app)

    response = client.get(f"{BASE}/pumpfun")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["stats"]["hourlyBuyVolume"] == 0
    assert body["recentTrades"] == []


def test_pumpfun_start_and_stop():
    feed = FakeLogFeed()
    app = build_app(feed=feed)

    with TestClient(app) as client:
        started = client.post(f"{BASE}/pumpfun", json={"action": "start"})
        again = client.post(f"{BASE}/pumpfun", json={"action": "start"})
        stopped = client.post(f"{BASE}/pumpfun", json={"action": "stop"})

    assert started.status_code == 200
    assert started.json()["isMonitoring"] is True
    assert again.json()["isMonitoring"] is True
    assert stopped.json() == {
        "success": True,
        "isMonitoring": False,
        "lastError": None,
        "message": "Monitor stopped successfully",
    }
    assert feed.subscribe_calls == 1


def test_pumpfun_rejects_unknown_action():
    client = TestClient(build_app())

    response = client.post(f"{BASE}/pumpfun", json={"action": "restart"})

    assert response.status_code == 400


def test_token_trades_route():
    client = TestClient(_populated_app())

    response = client.get(f"{BASE}/pumpfun/tokens/{MINT}/trades", params={"limit": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["trades"][0]["signature"] == "whale"
    assert body["launch"]["signature"] == "launch"


def test_alerts_route_lists_high_volume_trade():
    client = TestClient(_populated_app())

    response = client.get(f"{BASE}/pumpfun/alerts")

    assert response.status_code == 200
    body = response.json()
    kinds = {alert["kind"] for alert in body["alerts"]}
    assert "high_volume" in kinds
    assert body["thresholds"]["volumeSol"] == 2.0


def test_monitor_status_route():
    client = TestClient(_populated_app())

    response = client.get(f"{BASE}/pumpfun/status")

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "stopped"
    assert body["tradesDetected"] == 2
    assert body["launchesDetected"] == 1
