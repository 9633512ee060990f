"""
Test configuration and shared fixtures.
Uses an in-memory SQLite database; every test runs in a session that is
rolled back afterwards.
"""
from __future__ import annotations

import os

# Must be set before taskshare.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["NOTIFY_BROADCAST_ALL"] = "false"

from collections.abc import AsyncGenerator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from taskshare.core.access import Actor  # noqa: E402
from taskshare.core.security import hash_password  # noqa: E402
from taskshare.db.base import Base  # noqa: E402
from taskshare.db.session import get_db  # noqa: E402
from taskshare.events.publisher import dispatch_pending_events  # noqa: E402
from taskshare.main import app  # noqa: E402
from taskshare.models.user import User  # noqa: E402

# ── Test database ─────────────────────────────────────────────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

PASSWORD = "TestPass1"


@pytest_asyncio.fixture(scope="session", loop_scope="session", autouse=True)
async def create_tables() -> AsyncGenerator[None, None]:
    """Create all tables once per test session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture(loop_scope="session")
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional test database session that rolls back after each test."""
    async with TestSessionLocal() as session:
        try:
            yield session
            await session.rollback()
        finally:
            await session.close()


@pytest_asyncio.fixture(loop_scope="session")
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP test client bound to the test session.
    Queued change events are dispatched after each request, the way the
    real session dependency does after commit.
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db
        await dispatch_pending_events(db)

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Helpers ───────────────────────────────────────────────────────────────────

async def register(
    client: AsyncClient,
    email: str,
    name: str = "Test User",
    password: str = PASSWORD,
) -> dict[str, Any]:
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": email, "name": name, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def bearer(auth_data: dict[str, Any]) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_data['token']}"}


# ── Helper fixtures ───────────────────────────────────────────────────────────

@pytest_asyncio.fixture(loop_scope="session")
async def alice(client: AsyncClient) -> dict[str, Any]:
    """Registered user who owns tasks in most tests."""
    return await register(client, "alice@example.com", "Alice")


@pytest_asyncio.fixture(loop_scope="session")
async def bob(client: AsyncClient) -> dict[str, Any]:
    """Second registered user, usually the share target."""
    return await register(client, "bob@example.com", "Bob")


@pytest_asyncio.fixture(loop_scope="session")
async def carol(client: AsyncClient) -> dict[str, Any]:
    """Third registered user with no access unless granted."""
    return await register(client, "carol@example.com", "Carol")


@pytest.fixture
def alice_headers(alice: dict[str, Any]) -> dict[str, str]:
    return bearer(alice)


@pytest.fixture
def bob_headers(bob: dict[str, Any]) -> dict[str, str]:
    return bearer(bob)


@pytest.fixture
def carol_headers(carol: dict[str, Any]) -> dict[str, str]:
    return bearer(carol)


# ── Service-level fixtures ────────────────────────────────────────────────────

async def make_user(db: AsyncSession, email: str, name: str) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=hash_password(PASSWORD),
        provider="local",
        is_verified=True,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, email=user.email, name=user.name)


@pytest_asyncio.fixture(loop_scope="session")
async def owner(db: AsyncSession) -> User:
    return await make_user(db, "owner@example.com", "Owner")


@pytest_asyncio.fixture(loop_scope="session")
async def collaborator(db: AsyncSession) -> User:
    return await make_user(db, "collab@example.com", "Collaborator")


@pytest_asyncio.fixture(loop_scope="session")
async def outsider(db: AsyncSession) -> User:
    return await make_user(db, "outsider@example.com", "Outsider")
