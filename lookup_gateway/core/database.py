"""
Relational store of record: users, api_keys, api_usage_logs.

  • engine / async_session_factory — one pool per process, sized from
    settings when the backend is a server database.
  • get_db_session — request-scoped AsyncSession for FastAPI routes.
  • Base — the declarative base every model and the Alembic env share.

Quota increments are single UPDATE statements. The lookup pipeline
commits its reads before calling the upstream, so no connection sits
in a transaction while the network is slow.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from lookup_gateway.core.config import settings


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.DEBUG}
    # SQLite (tests, local scratch) runs on a single-connection pool
    if make_url(url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Services commit their own writes; anything left open is rolled back on close."""
    async with async_session_factory() as session:
        yield session
