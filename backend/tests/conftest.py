"""Shared test fixtures for backend tests."""

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from chatrelay.core.config import Settings
from chatrelay.main import create_app
from chatrelay.services.relay.ollama import OllamaRelayClient
from chatrelay.services.storage.database import DatabaseStorage
from chatrelay.services.storage.memory import MemoryStorage

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

ADMIN_PASSWORD = "letmein"
RELAY_URL = "http://relay.test"


def make_settings(**overrides) -> Settings:
    values = {
        "storage_backend": "memory",
        "session_secret": "test-secret",
        "bcrypt_rounds": 4,
        "admin_password": ADMIN_PASSWORD,
        "relay_default_url": RELAY_URL,
        "relay_timeout_seconds": 2.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_storage(kind: str, settings: Settings):
    if kind == "memory":
        return MemoryStorage(settings.session_secret, settings.log_capacity)
    return DatabaseStorage(test_engine, settings.session_secret, settings.log_capacity)


class FakeUpstream:
    """Stands in for the model endpoint behind the tunnel."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler = lambda request: httpx.Response(200, json={"response": "Hello from model", "done": True})

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.handler(request)
        if not isinstance(response, httpx.Response):
            response = await response
        return response


def register(client: TestClient, username: str = "alice", password: str = "secret123") -> dict:
    response = client.post("/api/auth/register", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["user"]


def become_admin(client: TestClient) -> None:
    response = client.post("/api/admin/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import chatrelay.models  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture(params=["memory", "database"])
def storage(request, settings):
    return make_storage(request.param, settings)


@pytest.fixture
def app(settings, storage, upstream):
    relay = OllamaRelayClient(timeout=settings.relay_timeout_seconds, transport=httpx.MockTransport(upstream))
    return create_app(settings, storage=storage, relay_client=relay)


@pytest.fixture
def client(app):
    """FastAPI TestClient over injected storage and a mocked model endpoint."""
    with TestClient(app) as c:
        yield c
