"""
Shared fixtures: an in-memory SQLite store behind the real application factory.
"""
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from wifidesk.api.app import create_app
from wifidesk.lib.db import Database
from wifidesk.lib.metrics import reset_metrics
from wifidesk.lib.settings import Settings


TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"


@pytest.fixture(autouse=True)
def clear_metrics():
    """Clear metrics before each test."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url=TEST_DATABASE_URL, log_json=False, _env_file=None)


@pytest.fixture
def database(settings) -> Generator[Database, None, None]:
    """Fresh schema per test."""
    db = Database(settings.database_url)
    db.create_all()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture
def db_session(database) -> Generator[Session, None, None]:
    """Get database session for tests."""
    session = database.SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def app(settings, database):
    return create_app(settings=settings, database=database)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Test client for FastAPI app (runs the lifespan)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def customer_payload():
    """Factory for a valid POST /customers body."""
    def _payload(**overrides) -> dict:
        payload = {
            "name": "Rahim Uddin",
            "phone": "01711000001",
            "package": "BASIC",
            "days": 10,
            "month": "2024-01",
            "price": 500,
        }
        payload.update(overrides)
        return payload

    return _payload
