"""
Input normalizers and validators: framework-agnostic, pure functions.
"""

from __future__ import annotations

import re

import validators as _validators

_UNSAFE_CHARS = re.compile(r"[<>\"'&]")


def normalize_identity(email: str) -> str:
    """Return the canonical account identity for *email* (trimmed, lowercase)."""
    return email.strip().lower()


def validate_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid email address."""
    return bool(_validators.email(email))


def validate_password_length(password: str, min_length: int = 8) -> bool:
    """Return True if *password* has at least *min_length* characters.

    Length is the only rule enforced on credentials; strength scoring is a
    client-side concern.
    """
    return bool(password) and len(password) >= min_length


def sanitize_string(value: str) -> str:
    """Trim *value* and strip characters that are unsafe in HTML contexts.

    Applied to display names only. Passwords are never sanitized.
    """
    return _UNSAFE_CHARS.sub("", value.strip())
