# tests/test_health.py
from fastapi.testclient import TestClient


def test_health(client: TestClient) -> None:
    """Test the health check endpoint."""
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_root_responds(client: TestClient) -> None:
    """Verify that the root endpoint names the API and its docs."""
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["name"] == "Orgboard"
    assert r.json()["docs"] == "/docs"
