"""
Shared test fixtures for the HR Portal test suite.

Async throughout (aiosqlite + AsyncSession); every test gets a fresh
in-memory database.
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-0123456789abcdef0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CORS_ORIGINS"] = '["*"]'

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.tokens import TokenService
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.schemas.token import SessionIdentity
from app.services.credential_store import CredentialStore

LOGIN_URL = "/api/auth/login"


@pytest.fixture
async def test_engine():
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def override_db(session_factory):
    """Point the app's get_db dependency at the test database."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def async_client(override_db) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct store access in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session) -> CredentialStore:
    return CredentialStore(db_session)


@pytest.fixture
def token_service() -> TokenService:
    return app.state.token_service


# ── Accounts ────────────────────────────────────────────────────────
async def _create(session_factory, full_name, username, password, role):
    async with session_factory() as session:
        return await CredentialStore(session).create(full_name, username, password, role)


@pytest.fixture
async def admin_user(session_factory):
    return await _create(session_factory, "Admin Person", "root", "rootpass", "admin")


@pytest.fixture
async def regular_user(session_factory):
    return await _create(session_factory, "Alice Smith", "alice", "secret123", "user")


async def login_headers(client: AsyncClient, username: str, password: str) -> dict[str, str]:
    resp = await client.post(LOGIN_URL, json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
async def admin_headers(async_client, admin_user) -> dict[str, str]:
    return await login_headers(async_client, "root", "rootpass")


@pytest.fixture
async def user_headers(async_client, regular_user) -> dict[str, str]:
    return await login_headers(async_client, "alice", "secret123")


@pytest.fixture
def identity() -> SessionIdentity:
    return SessionIdentity(id="abc123", username="alice", full_name="Alice Smith", role="user")
