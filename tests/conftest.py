"""
Shared pytest fixtures for Budgello tests.
"""

import os

# Must be set before budgello.config is imported
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from budgello.config import Settings
from budgello.database import build_engine, init_db
from budgello.main import create_app


ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "adminpw"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret=os.environ["JWT_SECRET"],
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """Test client; entering it runs startup, so every test gets a fresh database."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def register(client, username, password="pw123"):
    response = client.post("/auth/register", json={"username": username, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def login(client, username, password="pw123"):
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def auth_headers(client, username, password="pw123"):
    token = login(client, username, password)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    """Registered user 'alice': (user record, auth headers)."""
    user = register(client, "alice")
    return user, auth_headers(client, "alice")


@pytest.fixture
def bob(client):
    user = register(client, "bob", "bobpw456")
    return user, auth_headers(client, "bob", "bobpw456")


@pytest.fixture
def admin_headers(client):
    return auth_headers(client, ADMIN_USERNAME, ADMIN_PASSWORD)
