# devboard/conftest.py
import os
from datetime import datetime, timezone

import pytest

# Settings are read at import time; give the app a signing key and database
os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from devboard.core.database import get_db, metadata  # noqa: E402
from devboard.tests.mocks import ManualClock  # noqa: E402


@pytest.fixture
def engine():
    """In-memory SQLite engine with every table created."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(eng)
    yield eng
    metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(engine):
    from devboard.main import app as fastapi_app

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def clock():
    return ManualClock(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))


def _register(client, username: str, email: str) -> dict:
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": "Passw0rd!"},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return {
        "user": body["data"]["user"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
    }


@pytest.fixture
def auth(client):
    """A registered user and its Authorization header."""
    return _register(client, "alice", "alice@example.com")


@pytest.fixture
def other_auth(client):
    return _register(client, "bobby", "bob@example.com")
