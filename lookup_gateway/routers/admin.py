"""
Admin router — key management behind an admin session.

POST   /admin/login              → issue session (cookies)
POST   /admin/logout             → revoke session
GET    /admin/keys               → list keys (status / user filters)
POST   /admin/keys               → create key, secret shown once
POST   /admin/keys/{id}/pause    → pause
POST   /admin/keys/{id}/resume   → resume
DELETE /admin/keys/{id}          → revoke (soft delete)

Everything except /login requires a valid admin_session cookie.
"""

import logging
import math
from typing import Annotated, Literal

import redis.asyncio as redis
from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lookup_gateway.auth.dependencies import SESSION_COOKIE, TOKEN_COOKIE, get_current_admin
from lookup_gateway.auth.hashing import verify_password
from lookup_gateway.auth.sessions import AdminIdentity, create_session, destroy_session
from lookup_gateway.core.config import settings
from lookup_gateway.core.database import get_db_session
from lookup_gateway.core.redis import get_redis
from lookup_gateway.models.user import User
from lookup_gateway.schemas.admin import (
    AdminOut,
    APIKeyCreate,
    APIKeyCreated,
    APIKeyOut,
    APIKeyPage,
    FiltersApplied,
    KeyActionResponse,
    LoginRequest,
    LoginResponse,
    Pagination,
)
from lookup_gateway.services import key_admin

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Redis = Annotated[redis.Redis, Depends(get_redis)]
Admin = Annotated[AdminIdentity, Depends(get_current_admin)]

_INVALID_CREDENTIALS = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid credentials",
)
_KEY_NOT_FOUND = HTTPException(
    status_code=status.HTTP_404_NOT_FOUND,
    detail="API key not found",
)


# ── Session ─────────────────────────────────────────────────
@router.post("/login", response_model=LoginResponse, summary="Admin sign-in")
async def login(
    payload: LoginRequest,
    response: Response,
    session: DbSession,
    client: Redis,
) -> LoginResponse:
    stmt = select(User).where(User.username == payload.username, User.is_active.is_(True))
    user = (await session.execute(stmt)).scalar_one_or_none()

    # Same 401 for unknown user and wrong password
    if user is None or not verify_password(payload.password, user.password_hash):
        raise _INVALID_CREDENTIALS

    session_id, token = await create_session(client, user.id, user.username)

    max_age = settings.SESSION_TTL_SECONDS
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        max_age=max_age,
        httponly=True,
        samesite="strict",
        secure=settings.SESSION_COOKIE_SECURE,
    )
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=max_age,
        samesite="strict",
        secure=settings.SESSION_COOKIE_SECURE,
    )
    return LoginResponse(user=AdminOut(id=user.id, username=user.username))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Admin sign-out")
async def logout(
    client: Redis,
    admin_session: str | None = Cookie(default=None, alias=SESSION_COOKIE),
) -> Response:
    await destroy_session(client, admin_session)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(SESSION_COOKIE)
    response.delete_cookie(TOKEN_COOKIE)
    return response


# ── Keys ────────────────────────────────────────────────────
@router.get("/keys", response_model=APIKeyPage, summary="List API keys")
async def list_keys(
    session: DbSession,
    _admin: Admin,
    key_status: Literal["active", "paused", "expired"] | None = Query(default=None, alias="status"),
    user_id: int | None = Query(default=None, ge=1),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
) -> APIKeyPage:
    rows, total = await key_admin.list_keys(
        session,
        status=key_status,
        user_id=user_id,
        page=page,
        limit=limit,
    )
    return APIKeyPage(
        data=[APIKeyOut.model_validate(row) for row in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit),
        ),
        filters_applied=FiltersApplied(status=key_status, user_id=user_id),
    )


@router.post(
    "/keys",
    response_model=APIKeyCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create an API key",
)
async def create_key(
    payload: APIKeyCreate,
    session: DbSession,
    admin: Admin,
) -> APIKeyCreated:
    try:
        api_key, secret = await key_admin.create_key(
            session,
            user_id=payload.user_id,
            daily_limit=payload.daily_limit,
            expires_in_days=payload.expires_in_days,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    logger.info("Admin %s created key id=%s", admin.username, api_key.id)
    return APIKeyCreated(
        id=api_key.id,
        api_key=secret,
        created_at=api_key.created_at,
        expires_at=api_key.expires_at,
        daily_limit=api_key.daily_limit,
    )


@router.post("/keys/{key_id}/pause", response_model=KeyActionResponse, summary="Pause a key")
async def pause_key(key_id: int, session: DbSession, _admin: Admin) -> KeyActionResponse:
    if not await key_admin.pause_key(session, key_id):
        raise _KEY_NOT_FOUND
    return KeyActionResponse(id=key_id, message="API key paused")


@router.post("/keys/{key_id}/resume", response_model=KeyActionResponse, summary="Resume a key")
async def resume_key(key_id: int, session: DbSession, _admin: Admin) -> KeyActionResponse:
    if not await key_admin.resume_key(session, key_id):
        raise _KEY_NOT_FOUND
    return KeyActionResponse(id=key_id, message="API key resumed")


@router.delete("/keys/{key_id}", response_model=KeyActionResponse, summary="Revoke a key")
async def revoke_key(key_id: int, session: DbSession, admin: Admin) -> KeyActionResponse:
    if not await key_admin.revoke_key(session, key_id):
        raise _KEY_NOT_FOUND
    logger.info("Admin %s revoked key id=%s", admin.username, key_id)
    return KeyActionResponse(id=key_id, message="API key revoked successfully")
