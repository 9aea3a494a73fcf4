"""
Administrative mutations on API keys.

These are the operations the admin API performs on the ledger:
create, pause, resume, revoke, and a filtered listing.

Rules:
  • The secret exists in memory only for the duration of create_key —
    it is returned once and never stored.
  • revoke_key is a soft delete (expiry moved one day into the past AND
    paused). It is idempotent and there is no un-revoke: resuming a
    revoked key leaves it expired.
  • list_keys accepts an enumerated set of filters and builds every
    condition with SQLAlchemy expressions — no string-assembled SQL.
  • Listing quota fields (daily_used, usage_percentage, is_over_limit)
    apply the same day-rollover rule as admission.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from lookup_gateway.auth.hashing import generate_api_key
from lookup_gateway.models.api_key import APIKey
from lookup_gateway.models.usage import UsageLog
from lookup_gateway.models.user import User
from lookup_gateway.services.quota import as_utc, effective_used

logger = logging.getLogger(__name__)

KeyStatus = Literal["active", "paused", "expired"]

MIN_EXPIRES_IN_DAYS = 1
MAX_EXPIRES_IN_DAYS = 3650
MIN_DAILY_LIMIT = 10
MAX_DAILY_LIMIT = 100_000


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# ── Create ──────────────────────────────────────────────────
async def create_key(
    session: AsyncSession,
    *,
    user_id: int,
    daily_limit: int,
    expires_in_days: int,
    now: datetime.datetime | None = None,
) -> tuple[APIKey, str]:
    """
    Create a key for an existing, active user.

    Returns:
        (api_key, secret) — secret must be shown to the admin immediately.

    Raises:
        ValueError: bounds violated or user missing/inactive.
    """
    if not MIN_EXPIRES_IN_DAYS <= expires_in_days <= MAX_EXPIRES_IN_DAYS:
        raise ValueError(
            f"Expiration must be between {MIN_EXPIRES_IN_DAYS}-{MAX_EXPIRES_IN_DAYS} days"
        )
    if not MIN_DAILY_LIMIT <= daily_limit <= MAX_DAILY_LIMIT:
        raise ValueError(
            f"Daily limit must be between {MIN_DAILY_LIMIT}-{MAX_DAILY_LIMIT}"
        )

    owner = await session.get(User, user_id)
    if owner is None or not owner.is_active:
        raise ValueError("User not found")

    now = now or _utcnow()
    secret, key_hash, preview = generate_api_key()

    api_key = APIKey(
        key_hash=key_hash,
        key_preview=preview,
        user_id=user_id,
        created_at=now,
        expires_at=now + datetime.timedelta(days=expires_in_days),
        is_paused=False,
        daily_limit=daily_limit,
        daily_used=0,
        last_reset_date=now.date(),
    )
    session.add(api_key)
    await session.commit()
    await session.refresh(api_key)

    logger.info("Created API key id=%s for user_id=%s", api_key.id, user_id)
    return api_key, secret


# ── Pause / resume / revoke ─────────────────────────────────
async def _update_key(session: AsyncSession, key_id: int, **values: object) -> bool:
    """Apply one UPDATE to a key and commit. Returns False if no such key."""
    stmt = (
        update(APIKey)
        .where(APIKey.id == key_id)
        .values(**values)
        .returning(APIKey.id)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    found = result.scalar_one_or_none() is not None
    await session.commit()
    return found


async def pause_key(session: AsyncSession, key_id: int) -> bool:
    """Stop all traffic on a key. Returns False if the key does not exist."""
    return await _update_key(session, key_id, is_paused=True)


async def resume_key(session: AsyncSession, key_id: int) -> bool:
    """Clear the pause flag. A revoked key stays expired."""
    return await _update_key(session, key_id, is_paused=False)


async def revoke_key(
    session: AsyncSession,
    key_id: int,
    now: datetime.datetime | None = None,
) -> bool:
    """Soft-delete a key: expire it one day ago AND pause it. Idempotent."""
    now = now or _utcnow()
    found = await _update_key(
        session,
        key_id,
        expires_at=now - datetime.timedelta(days=1),
        is_paused=True,
    )
    if found:
        logger.info("Revoked API key id=%s", key_id)
    return found


# ── Listing ─────────────────────────────────────────────────
@dataclass(frozen=True, slots=True)
class RemainingTime:
    days: int
    hours: int


@dataclass(frozen=True, slots=True)
class KeySummary:
    """One row of the admin key listing. Never carries the secret."""

    id: int
    key_preview: str
    user_id: int
    username: str
    created_at: datetime.datetime
    expires_at: datetime.datetime | None
    is_paused: bool
    daily_limit: int
    daily_used: int
    last_reset_date: datetime.date
    total_requests: int
    status: KeyStatus
    usage_percentage: int
    is_over_limit: bool
    remaining_time: RemainingTime | None


def _status_filter(status: KeyStatus, now: datetime.datetime) -> ColumnElement[bool]:
    not_expired = or_(APIKey.expires_at.is_(None), APIKey.expires_at > now)
    filters: dict[str, ColumnElement[bool]] = {
        "expired": and_(APIKey.expires_at.is_not(None), APIKey.expires_at <= now),
        "paused": APIKey.is_paused.is_(True),
        "active": and_(not_expired, APIKey.is_paused.is_(False)),
    }
    return filters[status]


def remaining_time(
    expires_at: datetime.datetime | None,
    now: datetime.datetime,
) -> RemainingTime | None:
    """Whole days and leftover whole hours until expiry. None if never or already expired."""
    if expires_at is None:
        return None
    left = as_utc(expires_at) - now
    if left <= datetime.timedelta(0):
        return None
    return RemainingTime(days=left.days, hours=left.seconds // 3600)


def usage_percentage(used_today: int, daily_limit: int) -> int:
    """Share of today's budget spent, rounded, capped at 100."""
    if daily_limit <= 0:
        return 0
    return min(100, round(used_today * 100 / daily_limit))


def derive_status(
    expires_at: datetime.datetime | None,
    is_paused: bool,
    now: datetime.datetime,
) -> KeyStatus:
    """Expired wins over paused for display (a revoked key reads as expired)."""
    if expires_at is not None and as_utc(expires_at) <= now:
        return "expired"
    if is_paused:
        return "paused"
    return "active"


async def list_keys(
    session: AsyncSession,
    *,
    status: KeyStatus | None = None,
    user_id: int | None = None,
    page: int = 1,
    limit: int = 50,
    now: datetime.datetime | None = None,
) -> tuple[list[KeySummary], int]:
    """
    Page through keys, newest first, with their lifetime request count.

    Quota fields describe today (UTC): a key last used yesterday shows
    daily_used = 0 and is never over its limit.

    Returns:
        (rows, total) — total is the match count ignoring pagination.
    """
    now = now or _utcnow()

    conditions: list[ColumnElement[bool]] = []
    if status is not None:
        conditions.append(_status_filter(status, now))
    if user_id is not None:
        conditions.append(APIKey.user_id == user_id)

    total_requests = func.count(UsageLog.id).label("total_requests")
    stmt = (
        select(APIKey, User.username, total_requests)
        .join(User, APIKey.user_id == User.id)
        .outerjoin(UsageLog, UsageLog.api_key_id == APIKey.id)
        .where(*conditions)
        .group_by(APIKey.id, User.username)
        .order_by(APIKey.created_at.desc(), APIKey.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    count_stmt = (
        select(func.count(APIKey.id))
        .join(User, APIKey.user_id == User.id)
        .where(*conditions)
    )

    rows = (await session.execute(stmt)).all()
    total = (await session.execute(count_stmt)).scalar_one()

    today = now.date()
    summaries: list[KeySummary] = []
    for key, username, count in rows:
        used_today = effective_used(key.daily_used, key.last_reset_date, today)
        summaries.append(
            KeySummary(
                id=key.id,
                key_preview=key.key_preview,
                user_id=key.user_id,
                username=username,
                created_at=as_utc(key.created_at),
                expires_at=as_utc(key.expires_at) if key.expires_at is not None else None,
                is_paused=key.is_paused,
                daily_limit=key.daily_limit,
                daily_used=used_today,
                last_reset_date=key.last_reset_date,
                total_requests=count,
                status=derive_status(key.expires_at, key.is_paused, now),
                usage_percentage=usage_percentage(used_today, key.daily_limit),
                is_over_limit=used_today >= key.daily_limit,
                remaining_time=remaining_time(key.expires_at, now),
            )
        )
    return summaries, total
