"""
Shared Redis client for ephemeral state.

Holds the per-IP admission windows and admin sessions. Nothing of the
sort is kept in process memory, so any number of gateway instances can
sit behind the same load balancer.
"""

import redis.asyncio as redis

from lookup_gateway.core.config import settings

# from_url does not connect until the first command
redis_client: redis.Redis = redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True,
)


async def get_redis() -> redis.Redis:
    """FastAPI dependency — returns the process-wide Redis client."""
    return redis_client
