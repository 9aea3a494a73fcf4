"""
Dev bootstrap script — create an admin user and one API key.

Usage:
    ADMIN_USERNAME=admin ADMIN_PASSWORD=... python -m scripts.bootstrap_dev

This will:
  1. Create the admin user (or reuse it if the username exists)
  2. Generate an API key owned by that user
  3. Print the raw key ONCE (only its fingerprint is stored)

Tables must already exist — run `alembic upgrade head` first.
"""

import asyncio
import os
import secrets
import sys

from sqlalchemy import select

from lookup_gateway.auth.hashing import hash_password
from lookup_gateway.core.database import async_session_factory, engine
from lookup_gateway.models.user import User
from lookup_gateway.services.key_admin import create_key

DAILY_LIMIT = 1000
EXPIRES_IN_DAYS = 365


async def main() -> None:
    username = os.environ.get("ADMIN_USERNAME", "admin")
    password = os.environ.get("ADMIN_PASSWORD") or secrets.token_urlsafe(12)
    generated_password = "ADMIN_PASSWORD" not in os.environ

    async with async_session_factory() as session:
        # ── Admin user ──────────────────────────────────────
        stmt = select(User).where(User.username == username)
        user = (await session.execute(stmt)).scalar_one_or_none()
        created_user = user is None
        if user is None:
            user = User(username=username, password_hash=hash_password(password))
            session.add(user)
            await session.commit()
            await session.refresh(user)

        # ── API key ─────────────────────────────────────────
        api_key, secret = await create_key(
            session,
            user_id=user.id,
            daily_limit=DAILY_LIMIT,
            expires_in_days=EXPIRES_IN_DAYS,
        )

    print()
    print("=" * 60)
    print("  Dev Bootstrap Complete")
    print("=" * 60)
    print()
    print(f"  Admin user: {user.username} (id={user.id})")
    if created_user and generated_password:
        print(f"  Password:   {password}")
    print()
    print(f"  API Key ID: {api_key.id}")
    print(f"  API Key:    {secret}")
    print(f"  Daily cap:  {api_key.daily_limit}, expires {api_key.expires_at:%Y-%m-%d}")
    print()
    print("  ⚠  Copy this key now — it will NEVER be shown again.")
    print("=" * 60)
    print()

    await engine.dispose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except ValueError as exc:
        print(f"Bootstrap failed: {exc}", file=sys.stderr)
        sys.exit(1)
