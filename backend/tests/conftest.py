"""Shared test fixtures for Gigarena backend tests.

Provides:
- A throwaway SQLite database per test (aiosqlite, tables created up front)
- Async FastAPI test client bound to that database
- Signup/login helpers that leave the session cookie in the client
- Token helpers for requests that should carry a given role
"""
import os

# Settings are read at import time, so the environment comes first
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-sessions")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import settings
from app.core.database import Database
from app.core.roles import Role
from app.main import create_app
from app.services.auth import create_session_token

COOKIE_NAME = settings.session_cookie_name

DEFAULT_PASSWORD = "Secret123"


@pytest.fixture
async def database(tmp_path):
    """Open database with every table created."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    db.open()
    await db.create_all()
    yield db
    await db.close()


@pytest.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def app(database):
    return create_app(database=database)


@pytest.fixture
async def client(app):
    """Async HTTP test client for the FastAPI app.

    Uses httpx AsyncClient with ASGI transport. The lifespan does not run, so
    the ``database`` fixture opens the database instead.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def signup_payload(**overrides):
    payload = {
        "name": "Test User",
        "email": "test@example.com",
        "password": DEFAULT_PASSWORD,
        "confirmPassword": DEFAULT_PASSWORD,
        "role": "FREELANCER",
        "terms": True,
    }
    payload.update(overrides)
    if "password" in overrides and "confirmPassword" not in overrides:
        payload["confirmPassword"] = overrides["password"]
    return payload


async def signup(client, **overrides):
    """Create an account through the API; the client keeps the session cookie."""
    response = await client.post("/api/v1/auth/signup", json=signup_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["user"]


@pytest.fixture
async def freelancer(client):
    return await signup(client, email="freelancer@example.com", role="FREELANCER")


@pytest.fixture
async def logged_in_client(client, freelancer):
    """Client holding a freelancer's session cookie."""
    return client


def session_token(user_id="user-1", role=Role.FREELANCER):
    return create_session_token(user_id, role)


def session_cookies(user_id="user-1", role=Role.FREELANCER):
    return {COOKIE_NAME: session_token(user_id, role)}
