# conftest.py
import os

# Point the app at a throwaway in-memory store before anything imports expense_tracker.db.
os.environ["EXPENSE_DB_URL"] = "sqlite://"
os.environ["EXPENSE_SEED_ON_STARTUP"] = "false"

import pytest
from fastapi.testclient import TestClient

from expense_tracker import models  # noqa: F401  - register tables on Base.metadata
from expense_tracker.config import settings
from expense_tracker.db import Base, engine, get_session
from expense_tracker.main import create_app
from expense_tracker.services.store import LocalStore


def pytest_configure(config):
    """Register custom markers to avoid warnings."""
    config.addinivalue_line("markers", "unit: service-level tests that do not go through HTTP")
    config.addinivalue_line("markers", "integration: marks tests that go through the REST API")


@pytest.fixture(autouse=True)
def fresh_database(tmp_path, monkeypatch):
    """Every test starts with empty tables and its own backup directory."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(settings, "backup_dir", str(tmp_path / "backups"))
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store():
    """A LocalStore whose writes are committed when the test finishes."""
    with get_session() as session:
        yield LocalStore(session)


@pytest.fixture
def seeded():
    with get_session() as session:
        LocalStore(session).initialize_default_data()


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def seeded_client(seeded, client):
    return client
