"""
Cryptographic helpers: password hashing and one-time code hashing.

Uses argon2 for passwords (via argon2-cffi) and SHA-256 for challenge codes.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    """Verify *plain_password* against an argon2 *password_hash*.

    Returns:
        ``True`` if the password matches, ``False`` on mismatch or when the
        stored hash is missing or malformed.
    """
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


class Argon2Hasher:
    """Password hashing primitive handed to the credential state machine."""

    def hash(self, raw: str) -> str:
        return hash_password(raw)

    def verify(self, raw: str, hashed: Optional[str]) -> bool:
        return verify_password(raw, hashed)


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Used to hash OTP codes before storing them so the plaintext is never
    persisted.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(token: str, token_hash: str) -> bool:
    """Constant-time comparison of *token* against a stored SHA-256 digest."""
    return hmac.compare_digest(hash_token(token), token_hash)
