"""
Caisse Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite file under pytest's tmp_path, with the
       schema already initialized. HTTP tests talk to a fresh app through
       httpx's ASGITransport (no server, no lifespan).

Fixture Hierarchy:
    Function-scoped:
    ├── db: Initialized Database on a throwaway file
    ├── test_client: HTTPX AsyncClient bound to create_app(database=db)
    ├── make_user: Factory for SessionUser identities
    └── auth_headers: Factory for bearer headers of a SessionUser

Tokens are minted directly with `create_token`, so most tests do not need
a stored account to act as a given role.
"""

import os

# Override settings for testing BEFORE any app imports
os.environ["JWT_SECRET"] = "test-secret-not-real-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"  # bcrypt minimum; keeps the suite fast
os.environ["DEFAULT_COMPANY"] = "ACME"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENVIRONMENT"] = "test"
for _name in ("BOOTSTRAP_ADMIN_EMAIL", "BOOTSTRAP_ADMIN_PASSWORD", "OPEN_USER_CREATION"):
    os.environ.pop(_name, None)

from typing import Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.database import Database
from app.schemas.auth import SessionUser
from app.security import create_token


@pytest_asyncio.fixture
async def db(tmp_path):
    """A schema-initialized Database on a fresh file, disposed after the test."""
    database = Database(str(tmp_path / "data" / "caisse.sqlite"))
    await database.init_schema()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def test_client(db):
    """
    Async HTTP client talking to an app that serves the `db` fixture.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from app.main import create_app

    app = create_app(database=db)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_user():
    """Build a SessionUser; keyword arguments override the cashier defaults."""

    def _make(**overrides) -> SessionUser:
        fields = {
            "id": 1,
            "email": "cashier@acme.test",
            "role": "cashier",
            "company": "ACME",
            "agencies": "Valence,Lyon",
        }
        fields.update(overrides)
        return SessionUser(**fields)

    return _make


@pytest.fixture
def auth_headers():
    """Factory: Authorization header carrying a freshly signed token for a user."""

    def _headers(user: SessionUser) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_token(user)}"}

    return _headers
