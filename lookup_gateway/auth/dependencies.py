"""
FastAPI dependency for admin session authentication.

Flow:
  1. Read the admin_session cookie
  2. Fingerprint it and load the Redis session record
  3. Verify the embedded JWT and that its userId matches the record
  4. Slide the idle window forward
  5. Return the AdminIdentity

Security:
  • Generic 401 for ALL failure modes (missing, unknown, revoked, expired)
  • Session ids are NEVER logged
  • Only the admin API uses this — the public lookup path never does
"""

from __future__ import annotations

from typing import Annotated

import redis.asyncio as redis
from fastapi import Cookie, Depends, HTTPException, status

from lookup_gateway.auth.sessions import AdminIdentity, validate_session
from lookup_gateway.core.redis import get_redis

SESSION_COOKIE = "admin_session"
TOKEN_COOKIE = "admin_token"

# Generic 401 — same message for all auth failures to avoid leaking info
_AUTH_FAILED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Unauthorized",
)


async def get_current_admin(
    client: Annotated[redis.Redis, Depends(get_redis)],
    admin_session: str | None = Cookie(default=None, alias=SESSION_COOKIE),
) -> AdminIdentity:
    """
    FastAPI dependency — resolves the session cookie to an AdminIdentity.

    Usage in routers:
        Admin = Annotated[AdminIdentity, Depends(get_current_admin)]
    """
    identity = await validate_session(client, admin_session)
    if identity is None:
        raise _AUTH_FAILED
    return identity
