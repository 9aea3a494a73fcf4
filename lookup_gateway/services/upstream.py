"""
Upstream lookup client.

Makes the single outbound call to the data provider via httpx and turns
whatever comes back into LookupRecords — or an UpstreamError.

Configuration:
  UPSTREAM_URL      — server-side only (never exposed to clients or logs)
  UPSTREAM_API_KEY  — server-side only
  UPSTREAM_TIMEOUT_SECONDS — hard ceiling on the call, default 10s

Scrubbing:
  • Log lines carry the failure class and HTTP status only. No URL,
    no query string (it holds the credential), no response body.
  • UpstreamError messages are fixed strings; raw exceptions are not
    chained into them.
  • Anything but {"data": [ {...}, ... ]} is a failure — no partial
    success.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from lookup_gateway.core.config import settings
from lookup_gateway.schemas.lookup import PLACEHOLDER, LookupRecord

logger = logging.getLogger(__name__)

RECORD_FIELDS = ("name", "fname", "mobile", "alt", "address", "circle", "id")

_HEADERS = {
    "User-Agent": "PhoneLookupAPI/1.0",
    "Accept": "application/json",
}


class UpstreamError(Exception):
    """The provider could not produce a usable answer. Message is safe to log."""


async def get_upstream_client() -> AsyncIterator[httpx.AsyncClient]:
    """FastAPI dependency — one bounded-timeout client per request."""
    async with httpx.AsyncClient(
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        headers=_HEADERS,
    ) as client:
        yield client


async def fetch_records(client: httpx.AsyncClient, number: str) -> list[dict[str, Any]]:
    """
    Ask the provider about one number.

    Returns:
        The raw `data` entries, each guaranteed to be a dict.

    Raises:
        UpstreamError: timeout, transport failure, non-2xx, non-JSON,
            or a payload of the wrong shape.
    """
    if not settings.UPSTREAM_URL:
        logger.error("Upstream is not configured")
        raise UpstreamError("upstream not configured")

    try:
        response = await client.get(
            settings.UPSTREAM_URL,
            params={"key": settings.UPSTREAM_API_KEY, "number": number},
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        )
    except httpx.TimeoutException:
        logger.error("Upstream request timed out")
        raise UpstreamError("upstream timeout") from None
    except httpx.HTTPError as exc:
        logger.error("Upstream request failed: %s", type(exc).__name__)
        raise UpstreamError("upstream transport error") from None

    if not response.is_success:
        logger.error("Upstream returned status=%d", response.status_code)
        raise UpstreamError("upstream bad status")

    # ── Validate shape ──────────────────────────────────────
    try:
        payload = response.json()
    except ValueError:
        logger.error("Upstream returned a non-JSON body")
        raise UpstreamError("upstream malformed body") from None

    entries = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        logger.error("Upstream payload has unexpected shape")
        raise UpstreamError("upstream malformed body")

    return entries


def _text(value: Any) -> str | None:
    """Coerce a provider value to text; empty/null becomes None."""
    if value is None or value == "" or value is False:
        return None
    return str(value)


def normalize_records(entries: list[dict[str, Any]], number: str) -> list[LookupRecord]:
    """
    Project provider entries onto the public field set.

    Missing or empty fields become "N/A"; a missing mobile echoes the
    queried number. Any extra provider fields are dropped.
    """
    records: list[LookupRecord] = []
    for entry in entries:
        values = {field: _text(entry.get(field)) for field in RECORD_FIELDS}
        records.append(
            LookupRecord(
                name=values["name"] or PLACEHOLDER,
                fname=values["fname"] or PLACEHOLDER,
                mobile=values["mobile"] or number,
                alt=values["alt"] or PLACEHOLDER,
                address=values["address"] or PLACEHOLDER,
                circle=values["circle"] or PLACEHOLDER,
                id=values["id"] or PLACEHOLDER,
            )
        )
    return records
