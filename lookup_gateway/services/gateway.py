"""
Lookup pipeline — composes the ledger, limiter, upstream and recorder.

Flow:
  1. Validate the number (no quota spent, nothing recorded on failure)
  2. Fingerprint the key and resolve it (unknown → 401, nothing recorded)
  3. Admission: paused → 403, expired → 401, out of budget → 429
  4. Per-IP hourly ceiling → 429
  5. Close the read transaction, call the upstream (→ 503 on failure)
  6. Normalize the records
  7. Spend one unit of the key's budget
  8. Record usage — on EVERY exit once step 2 succeeded

Every failure leaves this module as a GatewayError subclass. Anything
unexpected is logged here with its traceback and re-raised as an opaque
InternalError. The usage write and IP counter bump are best effort —
if they fail the response is unaffected.
"""

from __future__ import annotations

import datetime
import logging
import re
import time
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from lookup_gateway.auth.errors import (
    AccessSuspended,
    AuthenticationError,
    GatewayError,
    InternalError,
    InvalidNumberFormat,
    QuotaExceeded,
    RateLimitExceeded,
    UpstreamUnavailable,
)
from lookup_gateway.auth.hashing import fingerprint
from lookup_gateway.core.config import settings
from lookup_gateway.models.usage import STATUS_ERROR, STATUS_SUCCESS
from lookup_gateway.schemas.lookup import LookupMeta, LookupResponse
from lookup_gateway.services.quota import (
    Admission,
    KeyRecord,
    check_admission,
    consume,
    resolve_key,
    seconds_until_reset,
)
from lookup_gateway.services.rate_limiter import AdmissionLimiter
from lookup_gateway.services.upstream import UpstreamError, fetch_records, normalize_records
from lookup_gateway.services.usage_recorder import record_usage

logger = logging.getLogger(__name__)

# 10 ASCII digits, first one 6-9
_MOBILE_RE = re.compile(r"[6-9][0-9]{9}")


@dataclass(frozen=True, slots=True)
class LookupCall:
    """Everything the pipeline needs to know about one inbound call."""

    key: str
    number: str
    client_ip: str
    user_agent: str | None
    now: datetime.datetime


def validate_mobile_number(number: str) -> None:
    if not _MOBILE_RE.fullmatch(number):
        raise InvalidNumberFormat(f"rejected subject of length {len(number)}")


async def process_lookup(
    call: LookupCall,
    *,
    session: AsyncSession,
    limiter: AdmissionLimiter,
    upstream: httpx.AsyncClient,
) -> LookupResponse:
    """Run one lookup end to end. Raises GatewayError on every rejection."""
    started = time.perf_counter()

    # ── 1. Format ───────────────────────────────────────────
    validate_mobile_number(call.number)

    # ── 2. Resolve key ──────────────────────────────────────
    try:
        record = await resolve_key(session, fingerprint(call.key))
    except Exception as exc:
        logger.exception("Key resolution failed")
        raise InternalError("key resolution failed") from exc

    if record is None:
        raise AuthenticationError("unknown key")

    # From here on every exit path writes a usage row.
    outcome = STATUS_ERROR
    try:
        response = await _serve(call, record, session=session, limiter=limiter, upstream=upstream)
        outcome = STATUS_SUCCESS
        return response
    except GatewayError:
        raise
    except Exception as exc:
        logger.exception("Lookup failed for key id=%s", record.id)
        raise InternalError("unexpected pipeline failure") from exc
    finally:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        await _record_best_effort(call, record, outcome, elapsed_ms, session=session, limiter=limiter)


async def _serve(
    call: LookupCall,
    record: KeyRecord,
    *,
    session: AsyncSession,
    limiter: AdmissionLimiter,
    upstream: httpx.AsyncClient,
) -> LookupResponse:
    # ── 3. Key admission ────────────────────────────────────
    admission = check_admission(record, call.now)
    if admission is Admission.PAUSED:
        raise AccessSuspended(f"key id={record.id} is paused")
    if admission is Admission.EXPIRED:
        raise AuthenticationError(f"key id={record.id} is expired")
    if admission is Admission.QUOTA_EXCEEDED:
        raise QuotaExceeded(
            f"key id={record.id} used {record.daily_used}/{record.daily_limit}",
            retry_after=seconds_until_reset(call.now),
        )

    # ── 4. Per-IP ceiling ───────────────────────────────────
    if not await limiter.admit(call.client_ip, call.now):
        raise RateLimitExceeded("ip hourly ceiling reached")

    # ── 5. Upstream (no transaction held open) ──────────────
    await session.commit()
    try:
        entries = await fetch_records(upstream, call.number)
    except UpstreamError as exc:
        raise UpstreamUnavailable(
            str(exc),
            retry_after=settings.UPSTREAM_RETRY_AFTER_SECONDS,
        ) from None

    # ── 6. Sanitize ─────────────────────────────────────────
    records = normalize_records(entries, call.number)

    # ── 7. Spend quota ──────────────────────────────────────
    await consume(session, record.id, call.now.date())

    return LookupResponse(
        data=records,
        meta=LookupMeta(
            query=call.number,
            results=len(records),
            processed_at=datetime.datetime.now(datetime.timezone.utc),
        ),
    )


async def _record_best_effort(
    call: LookupCall,
    record: KeyRecord,
    outcome: str,
    elapsed_ms: int,
    *,
    session: AsyncSession,
    limiter: AdmissionLimiter,
) -> None:
    """Write the usage row and bump the IP window. Never raises."""
    try:
        # clear any transaction a failed step left behind
        await session.rollback()
        await record_usage(
            session,
            api_key_id=record.id,
            mobile_number=call.number,
            response_time_ms=elapsed_ms,
            status=outcome,
            ip_address=call.client_ip,
            user_agent=call.user_agent,
            created_at=call.now,
        )
    except Exception:
        logger.exception("Failed to record usage for key id=%s", record.id)

    try:
        await limiter.record_hit(call.client_ip, call.now)
    except Exception:
        logger.exception("Failed to update IP admission window")
