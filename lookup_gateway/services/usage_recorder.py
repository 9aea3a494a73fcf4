"""
Usage recorder — append-only audit trail of lookup calls.

One row per call that resolved a key, success or error. The gateway
never updates or deletes these rows.
"""

from __future__ import annotations

import datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from lookup_gateway.models.usage import UsageLog

logger = logging.getLogger(__name__)

_MAX_USER_AGENT = 512


async def record_usage(
    session: AsyncSession,
    *,
    api_key_id: int,
    mobile_number: str,
    response_time_ms: int,
    status: str,
    ip_address: str,
    user_agent: str | None,
    created_at: datetime.datetime,
) -> UsageLog:
    """Insert one usage row and commit. Raises on store failure."""
    entry = UsageLog(
        api_key_id=api_key_id,
        mobile_number=mobile_number,
        response_time_ms=max(0, response_time_ms),
        status=status,
        ip_address=ip_address,
        user_agent=user_agent[:_MAX_USER_AGENT] if user_agent else None,
        created_at=created_at,
    )
    session.add(entry)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return entry
