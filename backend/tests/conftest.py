"""
Centralized Test Configuration.
"""

from datetime import datetime

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.clock import FixedClock, get_clock
from backend.app.core.jwt import create_user_token
from backend.app.core.redis_client import get_redis
from backend.app.models.enums import UserRole
from backend.app.models.user import User
import backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def local_time(year, month, day, hour=0, minute=0) -> datetime:
    """Naive local wall-clock time; FixedClock reads it in the configured zone."""
    return datetime(year, month, day, hour, minute)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.expiries = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiries[key] = ex
        return True

    async def delete(self, key):
        self.expiries.pop(key, None)
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def flushdb(self):
        self.store = {}
        self.expiries = {}


@pytest.fixture
def mock_redis(monkeypatch):
    """Patch the global redis client used by the user cache."""
    fake = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", fake)
    return fake


@pytest.fixture
def clock():
    """Thursday 2025-07-10 10:00 local, inside that day's day shift."""
    return FixedClock(local_time(2025, 7, 10, 10, 0))


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
def apply_overrides(session_factory, mock_redis, clock):
    """Route the app's database, Redis and clock dependencies to the test doubles."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_clock] = lambda: clock
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    """Factory: insert a user and return it."""
    counter = {"n": 0}

    async def _make_user(name=None, role=UserRole.USER, unit_price=0.7, can_reserve=True, is_active=True):
        counter["n"] += 1
        user = User(
            openid=f"openid-test-{counter['n']:04d}",
            name=name or f"member{counter['n']}",
            role=role,
            unit_price=unit_price,
            can_reserve=can_reserve,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        db_session.expunge(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    """Factory: bearer header for a user."""
    def _auth_headers(user) -> dict:
        return {"Authorization": f"Bearer {create_user_token(user)}"}
    return _auth_headers
