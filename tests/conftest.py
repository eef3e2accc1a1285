"""
Pytest configuration and fixtures for Astro API tests.
"""

import os
from typing import Generator, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

# Set test environment before the app reads its settings
os.environ["ENVIRONMENT"] = "development"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["CORS_ORIGINS"] = "*"
os.environ.pop("N8N_WEBHOOK_URL", None)

from astro_api.config import Settings
from astro_api.dependencies import get_n8n_client
from astro_api.main import app
from astro_api.n8n.client import N8nClient
from astro_api.n8n.events import InMemoryEventLog
from astro_api.users.store import InMemoryUserStore

N8N_TEST_URL = "https://n8n.example.com/webhook/astro-secret"


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        environment="development",
        storage_backend="memory",
        n8n_webhook_url=None,
        webhook_event_capacity=100,
        cors_origins="*",
    )


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client; the lifespan gives every test fresh in-memory stores."""
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def lenient_client() -> Generator[TestClient, None, None]:
    """Test client that returns 500 responses instead of re-raising server errors."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def event_log() -> InMemoryEventLog:
    return InMemoryEventLog(capacity=100)


class FakeN8n:
    """Stand-in for the n8n webhook, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.url = N8N_TEST_URL
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.json_body = {"received": True}
        self.text_body: Optional[str] = None
        self.error: Optional[Exception] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.text_body is not None:
            return httpx.Response(self.status_code, text=self.text_body)
        return httpx.Response(self.status_code, json=self.json_body)

    def client(self, url: Optional[str] = N8N_TEST_URL, timeout: float = 5.0) -> N8nClient:
        return N8nClient(url, timeout=timeout, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_n8n() -> FakeN8n:
    return FakeN8n()


@pytest.fixture
def configured_n8n(client, fake_n8n) -> FakeN8n:
    """Point the running app at the fake n8n endpoint."""
    relay = fake_n8n.client()
    app.dependency_overrides[get_n8n_client] = lambda: relay
    return fake_n8n


@pytest.fixture
def unconfigured_n8n(client, fake_n8n) -> FakeN8n:
    """No destination URL; the fake records any request that slips through."""
    relay = fake_n8n.client(url=None)
    app.dependency_overrides[get_n8n_client] = lambda: relay
    return fake_n8n


class FakeRedis:
    """Dictionary-backed subset of the redis.asyncio client API. Values are stored as bytes."""

    def __init__(self) -> None:
        self.values = {}
        self.lists = {}
        self.healthy = True
        self.closed = False

    @staticmethod
    def _bytes(value) -> bytes:
        return value if isinstance(value, bytes) else str(value).encode()

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value, nx=False):
        if nx and key in self.values:
            return None
        self.values[key] = self._bytes(value)
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None or self.lists.pop(key, None) is not None:
                removed += 1
        return removed

    async def lpush(self, key, *values):
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, self._bytes(value))
        return len(items)

    async def ltrim(self, key, start, end):
        items = self.lists.get(key, [])
        self.lists[key] = items[start:] if end == -1 else items[start:end + 1]
        return True

    async def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        return items[start:] if end == -1 else items[start:end + 1]

    async def lindex(self, key, index):
        items = self.lists.get(key, [])
        if -len(items) <= index < len(items):
            return items[index]
        return None

    async def llen(self, key):
        return len(self.lists.get(key, []))

    async def ping(self):
        if not self.healthy:
            raise ConnectionError("redis down")
        return True

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
