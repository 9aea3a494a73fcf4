"""
Redis-backed per-IP admission limiter.

Enforces IP_HOURLY_LIMIT requests per source IP per calendar hour (UTC),
independent of which API key the requests carry.

Design decisions:
  • Fixed calendar-hour buckets, not a sliding window. A burst that
    straddles the top of the hour can see up to 2× the limit — accepted.
  • admit() only READS the bucket. The bucket is bumped by record_hit(),
    which the pipeline calls every time it writes a usage log for that
    IP. The count therefore matches "usage logs from this IP this hour",
    rejected calls included.
  • Read and increment are separate round trips; under heavy concurrency
    a few extra requests may slip through. Accepted approximation.
  • Bucket keys carry their own TTL, so Redis evicts them without a
    cleanup job.
"""

from __future__ import annotations

import datetime
import logging

import redis.asyncio as redis

from lookup_gateway.core.config import settings

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60 * 60
_KEY_PREFIX = "ratelimit:ip"


def _hour_bucket(now: datetime.datetime) -> str:
    """Floor a timestamp to its UTC hour, e.g. 2026101914."""
    return now.astimezone(datetime.timezone.utc).strftime("%Y%m%d%H")


class AdmissionLimiter:
    """Per-source-IP request ceiling over a calendar hour."""

    def __init__(self, client: redis.Redis, limit: int | None = None) -> None:
        self._redis = client
        self.limit = limit if limit is not None else settings.IP_HOURLY_LIMIT

    def bucket_key(self, ip: str, now: datetime.datetime) -> str:
        return f"{_KEY_PREFIX}:{ip}:{_hour_bucket(now)}"

    async def current_count(self, ip: str, now: datetime.datetime) -> int:
        value = await self._redis.get(self.bucket_key(ip, now))
        return int(value) if value is not None else 0

    async def admit(self, ip: str, now: datetime.datetime) -> bool:
        """True while the IP is still under its ceiling for this hour."""
        count = await self.current_count(ip, now)
        if count >= self.limit:
            logger.warning("IP rate limit reached: count=%d limit=%d", count, self.limit)
            return False
        return True

    async def record_hit(self, ip: str, now: datetime.datetime) -> int:
        """Atomically count one request against the IP's current bucket."""
        key = self.bucket_key(ip, now)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, WINDOW_SECONDS)
            count, _ = await pipe.execute()
        return int(count)
