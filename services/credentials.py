"""
Credential state machine: password lockout and one-time challenges.

Stateless. Every operation takes the current account (or None when the
identity is unknown) and returns a Transition: the account as it should be
persisted plus a tagged Outcome. Nothing here touches the store, logs, or
raises for expected conditions; the caller persists ``transition.account``
when ``transition.changed`` is set and decides what to do with failures.

Accounts are pydantic models and are never mutated in place; each step
produces a copy.

    Unverified ──consume(registration | verification)──▶ Verified
    Unlocked ──failure_count reaches threshold──▶ Locked ──time──▶ Unlocked

The lock expires by time alone. The counter is only zeroed by a later
successful password check or an explicit unlock, so the first failure after
an expired lock re-locks immediately.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from config import AuthSettings
from errors import (
    AccountLocked,
    AccountNotFound,
    AppError,
    ChallengeExpired,
    CodeMismatch,
    IdentityTaken,
    InvalidCredential,
    PurposeMismatch,
    WeakCredential,
)
from schemas.models.account import (
    VERIFYING_PURPOSES,
    AccountDoc,
    ChallengePurpose,
    PendingChallenge,
)
from shared.crypto import hash_token, token_matches
from shared.datetime_utils import ensure_utc, minutes_until, utcnow
from shared.generators import generate_otp_code
from shared.validators import normalize_identity

T = TypeVar("T")

Clock = Callable[[], datetime]
CodeGenerator = Callable[[], str]


class PasswordHasher(Protocol):
    def hash(self, raw: str) -> str: ...

    def verify(self, raw: str, hashed: Optional[str]) -> bool: ...


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Success payload or exactly one named credential error."""

    value: Optional[T] = None
    error: Optional[AppError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the payload, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: Any = None) -> "Outcome[Any]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppError) -> "Outcome[Any]":
        return cls(error=error)


@dataclass(frozen=True)
class Transition(Generic[T]):
    account: Optional[AccountDoc]
    outcome: Outcome[T]
    changed: bool = field(default=False)


def is_locked(account: AccountDoc, now: datetime) -> bool:
    """True while ``locked_until`` lies in the future."""
    locked_until = ensure_utc(account.locked_until)
    return locked_until is not None and locked_until > ensure_utc(now)


class CredentialStateMachine:
    def __init__(
        self,
        hasher: PasswordHasher,
        settings: Optional[AuthSettings] = None,
        clock: Clock = utcnow,
        code_generator: CodeGenerator = generate_otp_code,
    ) -> None:
        self._hasher = hasher
        self._settings = settings or AuthSettings()
        self._clock = clock
        self._generate_code = code_generator

    @property
    def settings(self) -> AuthSettings:
        return self._settings

    def now(self) -> datetime:
        return self._clock()

    # ── Internals ────────────────────────────────────────────────────────────

    def _is_weak(self, raw_password: str) -> bool:
        return len(raw_password or "") < self._settings.min_password_length

    def _new_challenge(
        self, purpose: ChallengePurpose, ttl_minutes: int, now: datetime
    ) -> tuple[str, PendingChallenge]:
        code = self._generate_code()
        challenge = PendingChallenge(
            code_hash=hash_token(code),
            purpose=purpose,
            expires_at=now + timedelta(minutes=ttl_minutes),
            issued_at=now,
        )
        return code, challenge

    @staticmethod
    def _evolve(account: AccountDoc, now: datetime, **changes: Any) -> AccountDoc:
        changes["updated_at"] = now
        return account.model_copy(update=changes, deep=True)

    # ── Operations ───────────────────────────────────────────────────────────

    def register(
        self,
        existing: Optional[AccountDoc],
        identity: str,
        raw_password: str,
        **profile: Any,
    ) -> Transition[str]:
        """Create an unverified account with a pending registration challenge.

        The outcome carries the plaintext code for delivery.
        """
        if existing is not None:
            return Transition(existing, Outcome.failure(IdentityTaken(identity)))
        if self._is_weak(raw_password):
            return Transition(
                None,
                Outcome.failure(WeakCredential(self._settings.min_password_length)),
            )

        now = self.now()
        code, challenge = self._new_challenge(
            ChallengePurpose.REGISTRATION,
            self._settings.registration_otp_ttl_minutes,
            now,
        )
        account = AccountDoc(
            identity=normalize_identity(identity),
            credential_hash=self._hasher.hash(raw_password),
            verified=False,
            pending_challenge=challenge,
            created_at=now,
            updated_at=now,
            **profile,
        )
        return Transition(account, Outcome.success(code), changed=True)

    def attempt_password(
        self,
        account: Optional[AccountDoc],
        raw_password: str,
        remember: bool = False,
    ) -> Transition[AccountDoc]:
        """Check a password, counting failures towards the lock.

        ``verified`` is deliberately not consulted; gating is the caller's policy.
        """
        if account is None:
            return Transition(None, Outcome.failure(AccountNotFound()))

        now = self.now()
        if is_locked(account, now):
            remaining = minutes_until(account.locked_until, now)
            return Transition(account, Outcome.failure(AccountLocked(remaining)))

        if not self._hasher.verify(raw_password, account.credential_hash):
            threshold = self._settings.max_failed_attempts
            failure_count = account.failure_count + 1
            changes: dict[str, Any] = {"failure_count": failure_count}
            if failure_count >= threshold:
                changes["locked_until"] = now + timedelta(
                    minutes=self._settings.lockout_minutes
                )
            remaining_attempts = max(0, threshold - failure_count - 1)
            return Transition(
                self._evolve(account, now, **changes),
                Outcome.failure(InvalidCredential(remaining_attempts)),
                changed=True,
            )

        updated = self._evolve(
            account,
            now,
            failure_count=0,
            locked_until=None,
            remember_preference=remember,
        )
        return Transition(updated, Outcome.success(updated), changed=True)

    def issue_challenge(
        self,
        account: Optional[AccountDoc],
        purpose: ChallengePurpose,
        ttl_minutes: Optional[int] = None,
    ) -> Transition[str]:
        """Replace any pending challenge with a fresh code for *purpose*."""
        if account is None:
            return Transition(None, Outcome.failure(AccountNotFound()))

        purpose = ChallengePurpose(purpose)
        if ttl_minutes is None:
            ttl_minutes = self.default_ttl(purpose)
        now = self.now()
        code, challenge = self._new_challenge(purpose, ttl_minutes, now)
        updated = self._evolve(account, now, pending_challenge=challenge)
        return Transition(updated, Outcome.success(code), changed=True)

    def consume_challenge(
        self,
        account: Optional[AccountDoc],
        code: str,
        purpose: ChallengePurpose,
    ) -> Transition[AccountDoc]:
        """Spend the pending challenge.

        Checked in order: missing, wrong code (kept), expired (cleared),
        wrong purpose (kept). Success clears it and, for registration and
        verification purposes, marks the account verified.
        """
        if account is None:
            return Transition(None, Outcome.failure(AccountNotFound()))
        challenge = account.pending_challenge
        if challenge is None:
            return Transition(
                account,
                Outcome.failure(AccountNotFound("No pending verification code")),
            )

        if not token_matches(code or "", challenge.code_hash):
            return Transition(account, Outcome.failure(CodeMismatch()))

        now = self.now()
        if ensure_utc(now) > ensure_utc(challenge.expires_at):
            updated = self._evolve(account, now, pending_challenge=None)
            return Transition(
                updated, Outcome.failure(ChallengeExpired()), changed=True
            )

        purpose = ChallengePurpose(purpose)
        if ChallengePurpose(challenge.purpose) != purpose:
            return Transition(
                account,
                Outcome.failure(PurposeMismatch(challenge.purpose, purpose.value)),
            )

        changes: dict[str, Any] = {"pending_challenge": None}
        if purpose in VERIFYING_PURPOSES:
            changes["verified"] = True
        updated = self._evolve(account, now, **changes)
        return Transition(updated, Outcome.success(updated), changed=True)

    def change_credential(
        self, account: Optional[AccountDoc], new_raw_password: str
    ) -> Transition[AccountDoc]:
        """Store a new password hash and drop any pending password-reset code."""
        if account is None:
            return Transition(None, Outcome.failure(AccountNotFound()))
        if self._is_weak(new_raw_password):
            return Transition(
                account,
                Outcome.failure(WeakCredential(self._settings.min_password_length)),
            )

        now = self.now()
        changes: dict[str, Any] = {
            "credential_hash": self._hasher.hash(new_raw_password)
        }
        pending = account.pending_challenge
        if (
            pending is not None
            and ChallengePurpose(pending.purpose) == ChallengePurpose.PASSWORD_RESET
        ):
            changes["pending_challenge"] = None
        updated = self._evolve(account, now, **changes)
        return Transition(updated, Outcome.success(updated), changed=True)

    def confirm_external_identity(
        self,
        account: Optional[AccountDoc],
        identity: str,
        github_id: str,
        github_username: Optional[str] = None,
        first_name: str = "",
        last_name: str = "",
    ) -> Transition[AccountDoc]:
        """OAuth provider vouched for *identity*: create or link, always verified."""
        now = self.now()
        if account is None:
            created = AccountDoc(
                identity=normalize_identity(identity),
                verified=True,
                github_id=github_id,
                github_username=github_username,
                first_name=first_name,
                last_name=last_name,
                created_at=now,
                updated_at=now,
            )
            return Transition(created, Outcome.success(created), changed=True)

        changes: dict[str, Any] = {
            "verified": True,
            "github_id": github_id,
            "github_username": github_username,
        }
        if not account.first_name and first_name:
            changes["first_name"] = first_name
        if not account.last_name and last_name:
            changes["last_name"] = last_name
        updated = self._evolve(account, now, **changes)
        return Transition(updated, Outcome.success(updated), changed=True)

    def change_identity(
        self,
        account: Optional[AccountDoc],
        new_identity: str,
        taken: bool,
    ) -> Transition[str]:
        """Move the account to *new_identity* and require re-verification.

        *taken* says whether another account already owns the new identity.
        The outcome carries the plaintext verification code.
        """
        if account is None:
            return Transition(None, Outcome.failure(AccountNotFound()))
        new_identity = normalize_identity(new_identity)
        if taken:
            return Transition(account, Outcome.failure(IdentityTaken(new_identity)))

        now = self.now()
        code, challenge = self._new_challenge(
            ChallengePurpose.VERIFICATION,
            self._settings.verification_otp_ttl_minutes,
            now,
        )
        updated = self._evolve(
            account,
            now,
            identity=new_identity,
            verified=False,
            pending_challenge=challenge,
        )
        return Transition(updated, Outcome.success(code), changed=True)

    def unlock(self, account: Optional[AccountDoc]) -> Transition[AccountDoc]:
        """Administrative reset of the failure counter and lock."""
        if account is None:
            return Transition(None, Outcome.failure(AccountNotFound()))
        updated = self._evolve(
            account, self.now(), failure_count=0, locked_until=None
        )
        return Transition(updated, Outcome.success(updated), changed=True)

    def default_ttl(self, purpose: ChallengePurpose) -> int:
        s = self._settings
        return {
            ChallengePurpose.REGISTRATION: s.registration_otp_ttl_minutes,
            ChallengePurpose.LOGIN: s.login_otp_ttl_minutes,
            ChallengePurpose.PASSWORD_RESET: s.password_reset_otp_ttl_minutes,
            ChallengePurpose.VERIFICATION: s.verification_otp_ttl_minutes,
        }[ChallengePurpose(purpose)]
