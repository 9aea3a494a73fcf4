"""
Shared fixtures.

Environment is set BEFORE any lookup_gateway import so the settings
singleton picks up test values. Every test gets a fresh in-memory
SQLite database and a fresh fake Redis server.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("UPSTREAM_URL", "https://provider.internal.example/v2/lookup")
os.environ.setdefault("UPSTREAM_API_KEY", "upstream-credential-xyz")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("SESSION_COOKIE_SECURE", "false")
os.environ.setdefault("TRUSTED_PROXY_HOPS", "1")

import datetime
from collections.abc import Callable

import fakeredis
import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lookup_gateway.auth.hashing import generate_api_key, hash_password
from lookup_gateway.core.database import Base, get_db_session
from lookup_gateway.core.redis import get_redis
from lookup_gateway.main import app
from lookup_gateway.models.api_key import APIKey
from lookup_gateway.models.user import User
from lookup_gateway.routers.lookup import request_time
from lookup_gateway.services.upstream import get_upstream_client

UTC = datetime.timezone.utc
NOW = datetime.datetime(2026, 10, 19, 14, 30, tzinfo=UTC)
ADMIN_PASSWORD = "correct-horse-battery"

UPSTREAM_PAYLOAD = {
    "data": [
        {
            "name": "Asha Verma",
            "fname": "Rakesh Verma",
            "mobile": "9876543210",
            "address": "12 MG Road, Pune",
            "circle": "Maharashtra",
            "id": 4471,
            "provider_ref": "internal-xyz",
        }
    ]
}


# ── Database ────────────────────────────────────────────────
@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


# ── Redis ───────────────────────────────────────────────────
@pytest_asyncio.fixture
async def fake_redis():
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


# ── Seed data ───────────────────────────────────────────────
@pytest_asyncio.fixture
async def owner(session) -> User:
    user = User(username="admin", password_hash=hash_password(ADMIN_PASSWORD), is_active=True)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def make_key(session, owner) -> Callable:
    """Factory: insert a key with the given quota state, return (row, secret)."""

    async def _make(
        *,
        daily_limit: int = 1000,
        daily_used: int = 0,
        last_reset_date: datetime.date | None = None,
        expires_at: datetime.datetime | None = NOW + datetime.timedelta(days=30),
        is_paused: bool = False,
        user_id: int | None = None,
    ) -> tuple[APIKey, str]:
        secret, key_hash, preview = generate_api_key()
        key = APIKey(
            key_hash=key_hash,
            key_preview=preview,
            user_id=user_id or owner.id,
            created_at=NOW - datetime.timedelta(days=1),
            expires_at=expires_at,
            is_paused=is_paused,
            daily_limit=daily_limit,
            daily_used=daily_used,
            last_reset_date=last_reset_date or NOW.date(),
        )
        session.add(key)
        await session.commit()
        await session.refresh(key)
        return key, secret

    return _make


# ── Upstream ────────────────────────────────────────────────
class UpstreamStub:
    """Programmable MockTransport handler that remembers what it was asked."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json=UPSTREAM_PAYLOAD)
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def upstream_stub() -> UpstreamStub:
    return UpstreamStub()


@pytest_asyncio.fixture
async def upstream_client(upstream_stub):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream_stub)) as client:
        yield client


# ── HTTP app ────────────────────────────────────────────────
class Clock:
    def __init__(self, now: datetime.datetime) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest_asyncio.fixture
async def api(session_factory, fake_redis, upstream_client, clock):
    """httpx client bound to the app with every external store swapped out."""

    async def _db():
        async with session_factory() as s:
            yield s

    async def _redis():
        return fake_redis

    async def _upstream():
        yield upstream_client

    app.dependency_overrides[get_db_session] = _db
    app.dependency_overrides[get_redis] = _redis
    app.dependency_overrides[get_upstream_client] = _upstream
    app.dependency_overrides[request_time] = clock

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()
