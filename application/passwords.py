from __future__ import annotations

import hmac

from passlib.context import CryptContext

# Argon2 is memory-hard; passlib delegates to the `argon2-cffi` backend.
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

# Longer inputs are rejected before hashing.
MAX_PASSWORD_LENGTH = 20


def hash_password(password: str) -> str:
    """Hash a plain-text password with Argon2."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, stored: str) -> bool:
    """
    Verify a candidate password against a stored hash.

    Raises ValueError if `stored` is not a hash the context recognises.
    """
    return pwd_context.verify(plain_password, stored)


def matches_plaintext(plain_password: str, stored: str) -> bool:
    """Constant-time comparison for credentials stored without a hash."""
    return hmac.compare_digest(plain_password.encode("utf-8"), stored.encode("utf-8"))
