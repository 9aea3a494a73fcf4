"""
Admin session authority.

Two layers:
  • A signed JWT (HS256) with userId, username, iat and a 24h exp —
    verifiable without any lookup.
  • A Redis record under the session id's fingerprint holding that JWT,
    with its own TTL. Deleting the record revokes the session even
    though the JWT would still verify.

Renewal:
  Each successful validation resets the Redis TTL to the 30-minute
  renewal window. The JWT's exp is never refreshed, so 24h after login
  the session is dead no matter how active it is.

Session ids are never stored raw — only fingerprints, the same way API
keys are stored.
"""

from __future__ import annotations

import datetime
import json
import logging
import secrets
from dataclasses import dataclass

import redis.asyncio as redis
from jose import JWTError, jwt

from lookup_gateway.auth.hashing import fingerprint
from lookup_gateway.core.config import settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TTL = datetime.timedelta(hours=24)
_KEY_PREFIX = "session"


@dataclass(frozen=True, slots=True)
class AdminIdentity:
    """The authenticated admin behind a session."""

    user_id: int
    username: str


def _store_key(session_id: str) -> str:
    return f"{_KEY_PREFIX}:{fingerprint(session_id)}"


def create_token(user_id: int, username: str, now: datetime.datetime | None = None) -> str:
    now = now or datetime.datetime.now(datetime.timezone.utc)
    payload = {
        "userId": user_id,
        "username": username,
        "iat": int(now.timestamp()),
        "exp": int((now + TOKEN_TTL).timestamp()),
    }
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> dict | None:
    """Verify signature and expiry. Returns the claims or None."""
    try:
        return jwt.decode(token, settings.SESSION_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        return None


async def create_session(
    client: redis.Redis,
    user_id: int,
    username: str,
) -> tuple[str, str]:
    """
    Issue a new admin session.

    Returns:
        (session_id, token) — session_id goes in the HttpOnly cookie.
    """
    now = datetime.datetime.now(datetime.timezone.utc)
    session_id = secrets.token_urlsafe(32)
    token = create_token(user_id, username, now)

    record = {
        "token": token,
        "userId": user_id,
        "username": username,
        "createdAt": now.isoformat(),
    }
    await client.setex(_store_key(session_id), settings.SESSION_TTL_SECONDS, json.dumps(record))

    logger.info("Admin session issued for user_id=%s", user_id)
    return session_id, token


async def validate_session(
    client: redis.Redis,
    session_id: str | None,
) -> AdminIdentity | None:
    """
    Resolve a session id to its admin, sliding the idle window on success.

    Returns None for a missing, revoked, corrupt, or expired session,
    or one whose token belongs to a different user than the record.
    """
    if not session_id:
        return None

    key = _store_key(session_id)
    raw = await client.get(key)
    if raw is None:
        return None

    try:
        record = json.loads(raw)
        token = record["token"]
        stored_user_id = record["userId"]
    except (ValueError, KeyError, TypeError):
        logger.warning("Discarding malformed session record")
        return None

    claims = decode_token(token)
    if claims is None or claims.get("userId") != stored_user_id:
        return None

    await client.expire(key, settings.SESSION_RENEWAL_SECONDS)
    return AdminIdentity(user_id=claims["userId"], username=claims["username"])


async def destroy_session(client: redis.Redis, session_id: str | None) -> None:
    """Revoke a session. Unknown or empty ids are a no-op."""
    if session_id:
        await client.delete(_store_key(session_id))
