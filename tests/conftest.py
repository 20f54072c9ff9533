"""Shared fixtures: an app over an in-memory store, HTTP clients, seeded users."""

import os
import tempfile

# Setup environment for testing
os.environ["FAMILYHUB_DATA_DIR"] = tempfile.mkdtemp()
os.environ["FAMILYHUB_STORE_BACKEND"] = "memory"
os.environ["FAMILYHUB_ASSISTANT_API_KEY"] = ""

import httpx
import pytest
from fastapi.testclient import TestClient

from familyhub.main import create_app
from familyhub.store import MemoryStore
from familyhub.sync.client import FamilyHubClient


class FlakyTransport(httpx.AsyncBaseTransport):
    """ASGI transport that records requests and can simulate an outage."""

    def __init__(self, app):
        self._inner = httpx.ASGITransport(app=app)
        self.requests: list[tuple[str, str]] = []
        self.fail: set[str] = set()  # HTTP methods that raise ConnectError

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.method in self.fail:
            raise httpx.ConnectError("simulated outage", request=request)
        self.requests.append((request.method, request.url.path))
        return await self._inner.handle_async_request(request)

    def count(self, method: str, prefix: str = "") -> int:
        return sum(1 for m, path in self.requests if m == method and path.startswith(prefix))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(store):
    return create_app(store=store)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def services(app):
    return app.state


@pytest.fixture
def make_user(client):
    def _make(username: str, password: str = "secret123", email: str | None = None, role: str = "solo"):
        r = client.post("/api/v1/users", json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
            "role": role,
        })
        assert r.status_code == 201, r.text
        return r.json()["user"]
    return _make


@pytest.fixture
def transport(app):
    return FlakyTransport(app)


@pytest.fixture
def api_client_factory(transport):
    """Builds FamilyHubClient instances bound to the test app (one per simulated device)."""
    def _factory():
        return FamilyHubClient("http://testserver", transport=transport)
    return _factory
