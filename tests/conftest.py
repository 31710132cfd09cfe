"""
Pytest fixtures for MetricGate tests.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from metricgate.config import ServerSettings, StoreConfig
from metricgate.main import create_app
from metricgate.observability import null_logger
from metricgate.repository import InMemoryStore

TEST_KEY = "test-signing-key"


@pytest.fixture
def store():
    """Fresh in-memory store without persistence."""
    return InMemoryStore(StoreConfig(store_file=None, restore=False), logger=null_logger())


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "metrics-db.json"


def _make_client(repository, key: str = "") -> AsyncClient:
    settings = ServerSettings(address="localhost:8080", key=key, store_file="")
    app = create_app(settings, repository=repository)
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest.fixture
async def client(store):
    """Async test client against an unkeyed server."""
    async with _make_client(store) as client:
        yield client


@pytest.fixture
async def keyed_client(store):
    """Async test client against a server that verifies hashes."""
    async with _make_client(store, key=TEST_KEY) as client:
        yield client
