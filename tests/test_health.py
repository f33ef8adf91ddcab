from fastapi.testclient import TestClient

from solwatch_service.main import app


def test_healthz():
    client = TestClient(app)
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["monitor"]["state"] == "stopped"


def test_internal_health():
    client = TestClient(app)
    response = client.get("/internal/solwatch/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "solwatch-service"
