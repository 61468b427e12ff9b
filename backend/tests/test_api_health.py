"""Tests for the health endpoint and unhandled-error responses."""

from fastapi.testclient import TestClient

from chatrelay.main import create_app
from chatrelay.services.relay.base import BaseRelayClient
from chatrelay.services.storage.memory import MemoryStorage
from tests.conftest import make_settings


class ExplodingRelay(BaseRelayClient):
    async def generate(self, target_url, model, prompt):
        raise RuntimeError("relay exploded")

    async def probe(self, target_url):
        raise RuntimeError("relay exploded")


def _crash(environment: str):
    settings = make_settings(environment=environment)
    storage = MemoryStorage(settings.session_secret)
    app = create_app(settings, storage=storage, relay_client=ExplodingRelay())
    with TestClient(app, raise_server_exceptions=False) as c:
        response = c.post("/api/generate", json={"prompt": "hi"})
    return response, storage


def test_health_returns_ok(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["app"] == "Chat Relay"


def test_unhandled_error_shows_detail_in_development():
    response, storage = _crash("development")
    assert response.status_code == 500
    assert response.json() == {"detail": "relay exploded"}
    assert storage.recent_errors(1)[0].data["error_type"] == "RuntimeError"


def test_unhandled_error_is_generic_in_production():
    response, _ = _crash("production")
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
