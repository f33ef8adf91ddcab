import httpx
from fastapi.testclient import TestClient

from utils.app_helpers import build_app

BASE = "/internal/solwatch/v1"


class RecordingHandler:
    def __init__(self, status: int = 200, payload=None):
        self.status = status
        self.payload = payload
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        payload = self.payload if self.payload is not None else {"success": True, "data": {"path": request.url.path}}
        return httpx.Response(self.status, json=payload)


def test_trending_endpoint_returns_unwrapped_data():
    handler = RecordingHandler()
    client = TestClient(build_app(handler=handler))

    response = client.get(f"{BASE}/birdeye", params={"endpoint": "trending"})

    assert response.status_code == 200
    assert response.json() == {"path": "/defi/token_trending"}


def test_missing_and_invalid_endpoint_are_rejected():
    client = TestClient(build_app())

    assert client.get(f"{BASE}/birdeye").status_code == 400
    invalid = client.get(f"{BASE}/birdeye", params={"endpoint": "nope"})
    assert invalid.status_code == 400
    assert invalid.json()["detail"] == "Invalid endpoint parameter"


def test_address_required_for_token_endpoints():
    client = TestClient(build_app())

    response = client.get(f"{BASE}/birdeye", params={"endpoint": "overview"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing address parameter for overview"


def test_post_ohlcv_covers_trailing_day():
    handler = RecordingHandler()
    client = TestClient(build_app(handler=handler))

    response = client.post(f"{BASE}/birdeye", json={"endpoint": "ohlcv", "address": "token-1", "type": "15m"})

    assert response.status_code == 200
    params = handler.requests[0].url.params
    assert handler.requests[0].url.path == "/defi/v3/ohlcv"
    assert params["type"] == "15m"
    assert int(params["time_to"]) - int(params["time_from"]) == 24 * 60 * 60


def test_pnl_requires_token_addresses():
    handler = RecordingHandler()
    client = TestClient(build_app(handler=handler))

    missing = client.get(f"{BASE}/birdeye", params={"endpoint": "pnl", "address": "wallet-1"})
    ok = client.get(
        f"{BASE}/birdeye",
        params={"endpoint": "pnl", "address": "wallet-1", "token_addresses": "a,b"},
    )

    assert missing.status_code == 400
    assert ok.status_code == 200
    assert handler.requests[0].url.params["token_addresses"] == "a,b"


def test_upstream_error_maps_to_bad_gateway():
    handler = RecordingHandler(status=404, payload={"success": False, "message": "not found"})
    client = TestClient(build_app(handler=handler))

    response = client.get(f"{BASE}/birdeye", params={"endpoint": "metadata", "address": "token-1"})

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["upstreamStatus"] == 404
    assert detail["endpoint"] == "/defi/v3/token/meta-data/single"


def test_undecodable_upstream_body_maps_to_bad_gateway():
    def corrupt_handler(request: httpx.Request) -> httpx.Response:
        raise httpx.DecodingError("bad gzip body", request=request)

    client = TestClient(build_app(handler=corrupt_handler))

    response = client.get(f"{BASE}/birdeye", params={"endpoint": "trending"})

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["upstreamStatus"] is None
    assert detail["endpoint"] == "/defi/token_trending"
