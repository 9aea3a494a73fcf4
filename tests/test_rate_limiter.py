"""Per-IP admission limiter over calendar-hour buckets."""

import datetime

import pytest

from lookup_gateway.services.rate_limiter import WINDOW_SECONDS, AdmissionLimiter

from tests.conftest import NOW

IP = "203.0.113.7"


@pytest.mark.asyncio
async def test_admits_until_limit_then_rejects(fake_redis):
    limiter = AdmissionLimiter(fake_redis, limit=3)

    for _ in range(3):
        assert await limiter.admit(IP, NOW)
        await limiter.record_hit(IP, NOW)

    assert await limiter.admit(IP, NOW) is False


@pytest.mark.asyncio
async def test_admit_alone_does_not_count(fake_redis):
    limiter = AdmissionLimiter(fake_redis, limit=1)

    for _ in range(5):
        assert await limiter.admit(IP, NOW)
    assert await limiter.current_count(IP, NOW) == 0


@pytest.mark.asyncio
async def test_record_hit_sets_window_ttl(fake_redis):
    limiter = AdmissionLimiter(fake_redis, limit=10)

    assert await limiter.record_hit(IP, NOW) == 1
    assert await limiter.record_hit(IP, NOW) == 2

    ttl = await fake_redis.ttl(limiter.bucket_key(IP, NOW))
    assert 0 < ttl <= WINDOW_SECONDS


@pytest.mark.asyncio
async def test_ips_are_counted_independently(fake_redis):
    limiter = AdmissionLimiter(fake_redis, limit=1)
    await limiter.record_hit(IP, NOW)

    assert await limiter.admit(IP, NOW) is False
    assert await limiter.admit("198.51.100.1", NOW)


@pytest.mark.asyncio
async def test_counter_resets_at_the_hour_boundary(fake_redis):
    limiter = AdmissionLimiter(fake_redis, limit=2)
    end_of_hour = NOW.replace(minute=59, second=59)
    next_hour = end_of_hour + datetime.timedelta(seconds=1)

    await limiter.record_hit(IP, end_of_hour)
    await limiter.record_hit(IP, end_of_hour)
    assert await limiter.admit(IP, end_of_hour) is False

    # fixed window: a fresh bucket opens on the hour
    assert await limiter.admit(IP, next_hour)


def test_bucket_key_uses_utc_hour(fake_redis):
    limiter = AdmissionLimiter(fake_redis)
    ist = datetime.timezone(datetime.timedelta(hours=5, minutes=30))
    local = NOW.astimezone(ist)

    assert limiter.bucket_key(IP, local) == limiter.bucket_key(IP, NOW)
    assert limiter.bucket_key(IP, NOW) == f"ratelimit:ip:{IP}:2026101914"


def test_default_limit_comes_from_settings(fake_redis):
    assert AdmissionLimiter(fake_redis).limit == 100
