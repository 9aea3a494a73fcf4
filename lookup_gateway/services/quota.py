"""
Quota ledger — key resolution, admission check, and daily consumption.

Design decisions:
  • resolve_key is a single SELECT joining the key with its owner.
    Unknown key, inactive owner → both come back as None so the caller
    cannot tell them apart.
  • check_admission is pure: paused beats expired beats quota.
  • consume is ONE conditional UPDATE. Two concurrent requests on the
    first call of a new day cannot both reset the counter to 1, and no
    increment is lost, because the database evaluates the CASE against
    the row it is locking.
  • "Day" is the UTC calendar day.
"""

from __future__ import annotations

import datetime
import enum
import logging
from dataclasses import dataclass

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lookup_gateway.models.api_key import APIKey
from lookup_gateway.models.user import User

logger = logging.getLogger(__name__)


class Admission(str, enum.Enum):
    ADMITTED = "admitted"
    PAUSED = "paused"
    EXPIRED = "expired"
    QUOTA_EXCEEDED = "quota_exceeded"


@dataclass(frozen=True, slots=True)
class KeyRecord:
    """Read-only snapshot of a key's quota state at resolution time."""

    id: int
    user_id: int
    username: str
    expires_at: datetime.datetime | None
    is_paused: bool
    daily_limit: int
    daily_used: int
    last_reset_date: datetime.date

    def used_on(self, today: datetime.date) -> int:
        return effective_used(self.daily_used, self.last_reset_date, today)


def effective_used(daily_used: int, last_reset_date: datetime.date, today: datetime.date) -> int:
    """Consumption as of `today` — zero once the day has rolled over."""
    return daily_used if last_reset_date == today else 0


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Attach UTC to naive timestamps (stored values are always UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


async def resolve_key(session: AsyncSession, key_hash: str) -> KeyRecord | None:
    """Look up a key by fingerprint. Returns None for unknown or disabled owners."""
    stmt = (
        select(
            APIKey.id,
            APIKey.user_id,
            User.username,
            APIKey.expires_at,
            APIKey.is_paused,
            APIKey.daily_limit,
            APIKey.daily_used,
            APIKey.last_reset_date,
        )
        .join(User, APIKey.user_id == User.id)
        .where(APIKey.key_hash == key_hash, User.is_active.is_(True))
    )
    result = await session.execute(stmt)
    row = result.one_or_none()
    if row is None:
        return None

    return KeyRecord(
        id=row.id,
        user_id=row.user_id,
        username=row.username,
        expires_at=as_utc(row.expires_at) if row.expires_at is not None else None,
        is_paused=row.is_paused,
        daily_limit=row.daily_limit,
        daily_used=row.daily_used,
        last_reset_date=row.last_reset_date,
    )


def check_admission(record: KeyRecord, now: datetime.datetime) -> Admission:
    """
    Decide whether a resolved key may spend one unit right now.

    Order is fixed: paused → expired → quota. A paused key is
    reported as paused even when it is also expired or out of budget.
    """
    if record.is_paused:
        return Admission.PAUSED

    if record.expires_at is not None and record.expires_at <= now:
        return Admission.EXPIRED

    if record.used_on(now.date()) >= record.daily_limit:
        return Admission.QUOTA_EXCEEDED

    return Admission.ADMITTED


async def consume(
    session: AsyncSession,
    key_id: int,
    today: datetime.date,
) -> int | None:
    """
    Atomically spend one unit of a key's daily budget and commit.

    First call of a new day → daily_used = 1, last_reset_date = today.
    Otherwise → daily_used + 1.

    Returns the new daily_used, or None if the key row no longer exists.
    """
    stmt = (
        update(APIKey)
        .where(APIKey.id == key_id)
        .values(
            daily_used=case(
                (APIKey.last_reset_date == today, APIKey.daily_used + 1),
                else_=1,
            ),
            last_reset_date=today,
        )
        .returning(APIKey.daily_used)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    used = result.scalar_one_or_none()
    await session.commit()

    if used is None:
        logger.warning("consume() found no api_keys row for id=%s", key_id)
    return used


def seconds_until_reset(now: datetime.datetime) -> int:
    """Seconds until the next UTC midnight, when every budget refills."""
    tomorrow = datetime.datetime.combine(
        now.date() + datetime.timedelta(days=1),
        datetime.time.min,
        tzinfo=datetime.timezone.utc,
    )
    return max(1, int((tomorrow - now).total_seconds()))
