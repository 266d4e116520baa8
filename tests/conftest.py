"""
Shared fixtures for the order API tests.

Stores get a deterministic clock that advances one second per reading, so
timestamp ordering assertions never depend on wall-clock resolution.
"""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from order_api.database import make_engine
from order_api.main import create_app
from order_api.store import InMemoryOrderStore, SQLOrderStore


class TickingClock:
    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def sql_store(tmp_path, clock):
    store = SQLOrderStore(make_engine(f"sqlite:///{tmp_path / 'orders.db'}"), clock=clock)
    store.create_tables()
    yield store
    store.close()


@pytest.fixture
def memory_store(clock) -> InMemoryOrderStore:
    return InMemoryOrderStore(clock=clock)


@pytest.fixture(params=["sql", "memory"])
def store(request):
    """Runs a test once against each store implementation."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def client(sql_store):
    app = create_app(store=sql_store, enable_telemetry=False)
    with TestClient(app) as c:
        yield c
