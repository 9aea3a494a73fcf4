"""Admin session issue, validation, renewal and revocation."""

import datetime
import json

import pytest
from jose import jwt

from lookup_gateway.auth.hashing import fingerprint
from lookup_gateway.auth.sessions import (
    ALGORITHM,
    AdminIdentity,
    create_session,
    create_token,
    decode_token,
    destroy_session,
    validate_session,
)
from lookup_gateway.core.config import settings


@pytest.mark.asyncio
async def test_create_then_validate(fake_redis):
    session_id, token = await create_session(fake_redis, 7, "admin")

    identity = await validate_session(fake_redis, session_id)

    assert identity == AdminIdentity(user_id=7, username="admin")
    claims = decode_token(token)
    assert claims["userId"] == 7
    assert claims["username"] == "admin"
    assert claims["exp"] - claims["iat"] == 24 * 3600


@pytest.mark.asyncio
async def test_store_is_keyed_by_fingerprint_not_raw_id(fake_redis):
    session_id, token = await create_session(fake_redis, 7, "admin")

    keys = await fake_redis.keys("*")
    assert keys == [f"session:{fingerprint(session_id)}"]
    assert session_id not in keys[0]

    record = json.loads(await fake_redis.get(keys[0]))
    assert record["token"] == token
    assert record["userId"] == 7
    assert await fake_redis.ttl(keys[0]) == settings.SESSION_TTL_SECONDS


@pytest.mark.asyncio
async def test_validation_slides_ttl_to_renewal_window(fake_redis):
    session_id, _ = await create_session(fake_redis, 7, "admin")
    key = f"session:{fingerprint(session_id)}"

    await validate_session(fake_redis, session_id)

    assert 0 < await fake_redis.ttl(key) <= settings.SESSION_RENEWAL_SECONDS


@pytest.mark.asyncio
@pytest.mark.parametrize("session_id", [None, "", "never-issued"])
async def test_unknown_sessions_are_rejected(fake_redis, session_id):
    assert await validate_session(fake_redis, session_id) is None


@pytest.mark.asyncio
async def test_destroy_revokes(fake_redis):
    session_id, _ = await create_session(fake_redis, 7, "admin")

    await destroy_session(fake_redis, session_id)

    assert await validate_session(fake_redis, session_id) is None
    # idempotent
    await destroy_session(fake_redis, session_id)
    await destroy_session(fake_redis, None)


@pytest.mark.asyncio
async def test_token_user_mismatch_is_rejected(fake_redis):
    session_id, _ = await create_session(fake_redis, 7, "admin")
    key = f"session:{fingerprint(session_id)}"
    record = json.loads(await fake_redis.get(key))
    record["token"] = create_token(8, "intruder")
    await fake_redis.set(key, json.dumps(record))

    assert await validate_session(fake_redis, session_id) is None


@pytest.mark.asyncio
async def test_tampered_token_is_rejected(fake_redis):
    session_id, _ = await create_session(fake_redis, 7, "admin")
    key = f"session:{fingerprint(session_id)}"
    record = json.loads(await fake_redis.get(key))
    record["token"] = jwt.encode(
        {"userId": 7, "username": "admin", "exp": 4_000_000_000},
        "some-other-secret",
        algorithm=ALGORITHM,
    )
    await fake_redis.set(key, json.dumps(record))

    assert await validate_session(fake_redis, session_id) is None


@pytest.mark.asyncio
async def test_expired_token_outlives_nothing(fake_redis):
    session_id, _ = await create_session(fake_redis, 7, "admin")
    key = f"session:{fingerprint(session_id)}"
    record = json.loads(await fake_redis.get(key))
    long_ago = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(hours=25)
    record["token"] = create_token(7, "admin", now=long_ago)
    await fake_redis.set(key, json.dumps(record))

    assert await validate_session(fake_redis, session_id) is None


@pytest.mark.asyncio
async def test_malformed_record_is_rejected(fake_redis):
    session_id, _ = await create_session(fake_redis, 7, "admin")
    await fake_redis.set(f"session:{fingerprint(session_id)}", "not json")

    assert await validate_session(fake_redis, session_id) is None
