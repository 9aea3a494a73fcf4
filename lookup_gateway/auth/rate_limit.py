"""
FastAPI dependency wiring for the per-IP admission limiter.

The limiter itself lives in services.rate_limiter; this module only
binds it to the request-scoped Redis client so tests can swap the
store through dependency_overrides[get_redis].

Also resolves the caller's source IP:
  • TRUSTED_PROXY_HOPS = 0 → the socket peer, X-Forwarded-For ignored.
  • TRUSTED_PROXY_HOPS = N → the N-th X-Forwarded-For entry from the
    right. Entries further left were written by the caller and are
    never used. A chain shorter than N falls back to the socket peer.
  • Anything that does not parse as an IP address becomes "unknown".
"""

from __future__ import annotations

import ipaddress
from typing import Annotated

import redis.asyncio as redis
from fastapi import Depends, Request

from lookup_gateway.core.config import settings
from lookup_gateway.core.redis import get_redis
from lookup_gateway.services.rate_limiter import AdmissionLimiter

UNKNOWN_IP = "unknown"
# api_usage_logs.ip_address is String(64)
_MAX_IP_LENGTH = 64


async def get_admission_limiter(
    client: Annotated[redis.Redis, Depends(get_redis)],
) -> AdmissionLimiter:
    return AdmissionLimiter(client)


def normalize_ip(value: str | None) -> str:
    """Canonical text form of an IP address, or "unknown"."""
    if not value:
        return UNKNOWN_IP
    value = value.strip()
    if len(value) > _MAX_IP_LENGTH:
        return UNKNOWN_IP
    try:
        address = str(ipaddress.ip_address(value))
    except ValueError:
        return UNKNOWN_IP
    return address if len(address) <= _MAX_IP_LENGTH else UNKNOWN_IP


def client_ip(request: Request) -> str:
    peer = request.client.host if request.client is not None else None
    hops = settings.TRUSTED_PROXY_HOPS

    forwarded = request.headers.get("x-forwarded-for")
    if hops > 0 and forwarded:
        chain = [entry.strip() for entry in forwarded.split(",")]
        if len(chain) >= hops:
            return normalize_ip(chain[-hops])

    return normalize_ip(peer)
