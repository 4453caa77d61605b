"""
Account document model.

Maps to the `users` MongoDB collection. This is the only entity that carries
credential state: the password hash, the failed-attempt counter and lock, and
at most one pending one-time challenge.

Two creation paths produce slightly different shapes:
- Password registration: credential_hash set, verified False, a
  registration challenge pending
- GitHub OAuth: no credential_hash, verified True, github_* fields set

The pending challenge never stores the plaintext code, only its SHA-256.
`version` is bumped by the store on every write and used for
compare-and-swap updates.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.base import MongoBaseModel


class ChallengePurpose(str, Enum):
    REGISTRATION = "registration"
    LOGIN = "login"
    PASSWORD_RESET = "password_reset"
    VERIFICATION = "verification"


# Purposes whose successful consumption proves ownership of the identity
VERIFYING_PURPOSES = frozenset(
    {ChallengePurpose.REGISTRATION, ChallengePurpose.VERIFICATION}
)


class PendingChallenge(BaseModel):
    """One-shot, purpose-scoped, time-limited code embedded in the account."""

    model_config = ConfigDict(use_enum_values=True)

    code_hash: str
    purpose: ChallengePurpose
    expires_at: datetime
    issued_at: Optional[datetime] = None


class AccountDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    identity: str = Field(alias="email")
    credential_hash: Optional[str] = None
    verified: bool = False
    failure_count: int = Field(default=0, ge=0)
    locked_until: Optional[datetime] = None
    pending_challenge: Optional[PendingChallenge] = None
    remember_preference: bool = False

    first_name: str = ""
    last_name: str = ""
    github_id: Optional[str] = None
    github_username: Optional[str] = None

    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    @property
    def has_password(self) -> bool:
        return self.credential_hash is not None
