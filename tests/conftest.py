"""
tests/conftest.py
Shared fixtures: an in-memory SQLite database per test, an in-process Redis
double, an httpx client bound to the app, and seeded users / catalog rows.
"""

import os

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-0123456789abcdef")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config.database import Base, get_db
from config.redis_client import get_redis
from shared.models.models import Attraction, Booking, Safari, User, UserRole
from shared.utils.security import create_session_token, hash_password

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "correct-horse-battery"


def auth_headers(user: User) -> dict:
    """Bearer header carrying a fresh session token for `user`."""
    token, _ = create_session_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


class FakeRedis:
    """In-process stand-in for the handful of Redis commands the API issues."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def setex(self, key: str, ttl: int, value) -> bool:
        self.store[key] = str(value)
        self.ttls[key] = ttl
        return True

    async def exists(self, key: str) -> int:
        return int(key in self.store)

    async def incr(self, key: str) -> int:
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def expire(self, key: str, ttl: int) -> bool:
        self.ttls[key] = ttl
        return True

    async def ping(self) -> bool:
        return True


# ── Database ───────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def client(session_factory, redis):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Users ──────────────────────────────────────────────────────────────────────

async def _make_user(db: AsyncSession, email: str, first_name: str, role: str) -> User:
    user = User(
        id=uuid.uuid4(),
        first_name=first_name,
        last_name="Tester",
        email=email,
        phone_number="+254700000000",
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def user(db: AsyncSession) -> User:
    return await _make_user(db, "wanjiku@example.com", "Wanjiku", UserRole.CUSTOMER.value)


@pytest_asyncio.fixture
async def other_user(db: AsyncSession) -> User:
    return await _make_user(db, "otieno@example.com", "Otieno", UserRole.CUSTOMER.value)


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> User:
    return await _make_user(db, "admin@example.com", "Amina", UserRole.ADMIN.value)


# ── Catalog ────────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def attraction(db: AsyncSession) -> Attraction:
    attraction = Attraction(
        name="Maasai Mara National Reserve",
        location="Narok",
        category="Wildlife",
        price_usd=80,
        price_kes=10400,
        rating=0.0,
        reviews=0,
    )
    db.add(attraction)
    await db.commit()
    return attraction


@pytest_asyncio.fixture
async def safari(db: AsyncSession) -> Safari:
    safari = Safari(
        id=uuid.uuid4(),
        name="Great Migration Safari",
        location="Maasai Mara",
        price_usd=1200,
        price_kes=156000,
        duration=4,
    )
    db.add(safari)
    await db.commit()
    return safari


@pytest_asyncio.fixture
async def booking(db: AsyncSession, user: User, attraction: Attraction) -> Booking:
    booking = Booking(
        id=uuid.uuid4(),
        user_id=user.id,
        booking_type="attraction",
        item_id=str(attraction.id),
        booking_date=datetime.now(timezone.utc),
        travel_date="2026-12-20",
        adults=2,
        children=1,
        total_price_usd=240,
        total_price_kes=31200,
        deposit_amount=100,
        deposit_paid=False,
        status="confirmed",
        payment_status="unpaid",
    )
    db.add(booking)
    await db.commit()
    return booking
