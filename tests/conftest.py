from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from auth import MemoryStorage, SessionGate
from main import create_app
from store import EntityStore

# A fixed "now" a few days before the seeded 2024-01-15 appointments
FIXED_NOW = datetime(2024, 1, 10, 9, 0)


@pytest.fixture
def store():
    s = EntityStore(clock=lambda: FIXED_NOW)
    s.seed()
    yield s
    s.close()


@pytest.fixture
def empty_store():
    s = EntityStore(clock=lambda: FIXED_NOW)
    yield s
    s.close()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def client(store, storage):
    app = create_app(store=store, gate=SessionGate(storage))
    with TestClient(app) as c:
        yield c
