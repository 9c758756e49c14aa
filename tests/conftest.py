"""
Shared test fixtures for the Employee Portal test suite.

Async throughout (aiosqlite + AsyncSession). Requests authenticate with real
users and real JWTs; the application clock is frozen per test.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256-signing"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from portal.api.v1.deps import get_db
from portal.core.security import create_access_token, get_password_hash
from portal.db.base import Base
from portal.main import app
from portal.models.user import User

# Separate engine shared by the app (via dependency override) and the tests
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Monday 2026-03-02, 08:05 at the default +05:00 offset
FROZEN_NOW = datetime(2026, 3, 2, 3, 5, tzinfo=timezone.utc)
PASSWORD = "password123"


class FrozenClock:
    """Stand-in for ``portal.core.clock.utcnow`` that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)

    def set_local(self, hour: int, minute: int = 0) -> None:
        """Move to HH:MM local (+05:00) on the same local day."""
        local = self.now.astimezone(timezone(timedelta(hours=5)))
        self.now = local.replace(hour=hour, minute=minute, second=0).astimezone(timezone.utc)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch) -> FrozenClock:
    """Pin every handler's notion of "now"."""
    clock = FrozenClock(FROZEN_NOW)
    monkeypatch.setattr("portal.core.clock.utcnow", clock)
    return clock


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Users & auth headers ────────────────────────────────────────────
async def make_user(
    session: AsyncSession,
    email: str,
    role: str = "employee",
    password: str = PASSWORD,
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        full_name=email.split("@")[0].title(),
        role=role,
        is_active=is_active,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def employee(db_session: AsyncSession) -> User:
    return await make_user(db_session, "employee@portal.test")


@pytest.fixture
async def manager(db_session: AsyncSession) -> User:
    return await make_user(db_session, "manager@portal.test", role="manager")


@pytest.fixture
async def admin(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@portal.test", role="admin")


@pytest.fixture
def employee_headers(employee: User) -> dict[str, str]:
    return auth_headers(employee)


@pytest.fixture
def manager_headers(manager: User) -> dict[str, str]:
    return auth_headers(manager)


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return auth_headers(admin)
