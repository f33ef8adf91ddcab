from fastapi.testclient import TestClient

from solwatch_service.config import Settings
from solwatch_service.main import create_app
from utils.app_helpers import build_app
from utils.solana_fakes import FakeLogFeed


def test_lifespan_autostarts_and_stops_monitor():
    feed = FakeLogFeed()
    app = build_app(feed=feed, monitor_autostart=True)

    with TestClient(app):
        assert app.state.monitor.is_monitoring

    assert not app.state.monitor.is_monitoring
    assert feed.subscriptions[0].closed is True


def test_lifespan_leaves_monitor_stopped_without_autostart():
    feed = FakeLogFeed()
    app = build_app(feed=feed)

    with TestClient(app) as client:
        response = client.get("/healthz")

    assert response.json()["monitor"]["state"] == "stopped"
    assert feed.subscribe_calls == 0


def test_lifespan_closes_only_clients_it_created():
    owned = create_app(Settings(log_dir=None, monitor_autostart=False))
    with TestClient(owned):
        pass
    assert owned.state.market_data._client.is_closed

    injected = build_app()
    with TestClient(injected):
        pass
    assert not injected.state.market_data._client.is_closed


def test_internal_routes_are_mounted():
    with TestClient(build_app()) as client:
        snapshot = client.get("/internal/solwatch/v1/pumpfun")
        birdeye = client.get("/internal/solwatch/v1/birdeye", params={"endpoint": "trending"})
        metrics = client.get("/metrics")
        with client.websocket_connect("/ws/pumpfun") as websocket:
            websocket.send_text("ping")
            pong = websocket.receive_json()

    assert snapshot.status_code == 200
    assert snapshot.json()["success"] is True
    assert birdeye.status_code == 200
    assert birdeye.json() == {"path": "/defi/token_trending"}
    assert metrics.status_code == 200
    assert pong == {"type": "pong"}
