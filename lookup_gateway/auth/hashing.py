"""
Credential hashing utilities.

Security notes:
  • API keys and admin session ids are looked up by their SHA-256
    fingerprint. A fast hash is fine here because both are high-entropy
    random strings, not low-entropy passwords.
  • Admin passwords are the exception — they go through bcrypt
    (salted, deliberately slow).
  • generate_secret() is shown to the caller exactly once. Only its
    fingerprint is persisted.
"""

import hashlib
import secrets

import bcrypt


_SECRET_BYTES = 32  # 64 hex chars = 256 bits
_PREVIEW_LENGTH = 8


def fingerprint(secret: str) -> str:
    """
    One-way SHA-256 fingerprint of a presented secret.

    Returns the 64-char hex digest used for storage and lookup.
    """
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def generate_secret() -> str:
    """Return a fresh 64-char hex secret from the OS CSPRNG."""
    return secrets.token_hex(_SECRET_BYTES)


def generate_api_key() -> tuple[str, str, str]:
    """
    Generate a new API key.

    Returns:
        (secret, key_hash, preview) — secret is shown once, key_hash is
        stored, preview is the display-only prefix.
    """
    secret = generate_secret()
    return secret, fingerprint(secret), secret[:_PREVIEW_LENGTH]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False
