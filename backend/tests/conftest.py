import random

import pytest
from fastapi.testclient import TestClient

from smashboard.main import app
from smashboard.store import TournamentStore, get_store
from tests.factories import FakeClock


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(name="store")
def store_fixture():
    """Fresh in-memory store per test, seeded for replayable generation"""
    return TournamentStore(seed=42)


@pytest.fixture(name="client")
def client_fixture(store: TournamentStore):
    """Test client bound to the per-test store

    CRITICAL: Override MUST be set BEFORE TestClient() so the module-level
    store is never touched.
    """
    app.dependency_overrides[get_store] = lambda: store

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
