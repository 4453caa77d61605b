"""
Authentication flows built on the credential service.

Each public method is one HTTP operation: it runs one or two credential
steps, unwraps their outcomes (raising the typed credential errors the
error handler maps to responses), sends codes by email and writes the OTP
audit trail and activity log. Password login is two-step: a correct password
earns a login code by email, and only consuming that code issues tokens.

Verification gating is configuration, not code: ``require_verified_login``
refuses step one for unverified accounts, ``require_verified_session`` is
enforced by the bearer-token dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from config import AuthSettings
from errors import (
    AccountNotFound,
    AlreadyVerifiedError,
    AuthenticationError,
    EmailDeliveryError,
    EmailNotVerifiedError,
    WeakCredential,
)
from infrastructure.email.protocol import EmailProvider
from schemas.dto.requests.auth import UpdateProfileRequest
from schemas.models.account import AccountDoc, ChallengePurpose
from schemas.models.activity import ActivityAction, ActivityResource, OtpEvent
from services.activity_service import ActivityService
from services.credential_service import CredentialService
from services.credentials import Outcome
from services.otp_log_service import OtpLogService
from services.token_service import TokenPair, TokenService
from shared.datetime_utils import utcnow
from shared.ip_utils import ClientInfo
from shared.logging import get_logger
from shared.validators import normalize_identity, validate_password_length

log = get_logger(__name__)


@dataclass(frozen=True)
class SessionResult:
    account: AccountDoc
    tokens: TokenPair


class AuthService:
    def __init__(
        self,
        credentials: CredentialService,
        tokens: TokenService,
        email: EmailProvider,
        otp_logs: OtpLogService,
        activity: ActivityService,
        settings: AuthSettings,
        clock=utcnow,
    ) -> None:
        self._credentials = credentials
        self._tokens = tokens
        self._email = email
        self._otp_logs = otp_logs
        self._activity = activity
        self._settings = settings
        self._clock = clock

    @property
    def tokens(self) -> TokenService:
        return self._tokens

    # ── Helpers ──────────────────────────────────────────────────────────────

    async def _deliver_code(
        self,
        email: str,
        user_name: Optional[str],
        code: str,
        purpose: ChallengePurpose,
        client: Optional[ClientInfo],
    ) -> int:
        """Email *code* and audit the send. Returns the code lifetime in minutes."""
        ttl = self._credentials.machine.default_ttl(purpose)
        sent = await self._email.send_otp_email(
            email, user_name or None, code, purpose.value, ttl
        )
        if not sent:
            await self._otp_logs.record(
                email,
                purpose,
                OtpEvent.SENT,
                success=False,
                error_code=EmailDeliveryError.error_code,
                client=client,
            )
            raise EmailDeliveryError(
                "Unable to send verification code. Please try again or contact support."
            )
        await self._otp_logs.record(email, purpose, OtpEvent.SENT, client=client)
        return ttl

    async def _issue_and_deliver(
        self,
        account: AccountDoc,
        purpose: ChallengePurpose,
        client: Optional[ClientInfo],
    ) -> int:
        await self._otp_logs.check_send_allowed(account.identity)
        transition = await self._credentials.issue_challenge(account.identity, purpose)
        code = transition.outcome.unwrap()
        return await self._deliver_code(
            account.identity, account.first_name, code, purpose, client
        )

    async def _audit_consumption(
        self,
        email: str,
        purpose: ChallengePurpose,
        outcome: Outcome[Any],
        client: Optional[ClientInfo],
    ) -> None:
        if outcome.ok:
            await self._otp_logs.record(email, purpose, OtpEvent.VERIFIED, client=client)
        else:
            await self._otp_logs.record(
                email,
                purpose,
                OtpEvent.FAILED,
                success=False,
                error_code=outcome.error.error_code,
                client=client,
            )

    async def _consume(
        self,
        email: str,
        code: str,
        purpose: ChallengePurpose,
        client: Optional[ClientInfo],
    ) -> AccountDoc:
        transition = await self._credentials.consume_challenge(email, code, purpose)
        await self._audit_consumption(email, purpose, transition.outcome, client)
        if not transition.outcome.ok:
            log.info(
                "otp_rejected",
                purpose=purpose.value,
                error_code=transition.outcome.error.error_code,
            )
        return transition.outcome.unwrap()

    async def _require_account(self, email: str, message: str) -> AccountDoc:
        account = await self._credentials.get(email)
        if account is None:
            raise AccountNotFound(message)
        return account

    async def _start_session(
        self,
        account: AccountDoc,
        auth_method: str,
        client: Optional[ClientInfo],
    ) -> SessionResult:
        account = await self._credentials.save(
            account.model_copy(update={"last_login_at": self._clock()})
        )
        await self._activity.record(
            account.id,
            ActivityAction.LOGIN,
            ActivityResource.USER,
            resource_id=account.id_str,
            details={"method": auth_method},
            client=client,
        )
        pair = self._tokens.issue_pair(account, auth_method=auth_method)
        log.info("login_success", account_id=account.id_str, auth_method=auth_method)
        return SessionResult(account=account, tokens=pair)

    # ── Registration ─────────────────────────────────────────────────────────

    async def register(
        self,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        client: Optional[ClientInfo] = None,
    ) -> tuple[AccountDoc, int]:
        email = normalize_identity(email)
        await self._otp_logs.check_send_allowed(email)
        transition = await self._credentials.register(
            email, password, first_name=first_name, last_name=last_name
        )
        code = transition.outcome.unwrap()
        account = transition.account
        log.info("user_registered", account_id=account.id_str)
        ttl = await self._deliver_code(
            email, first_name, code, ChallengePurpose.REGISTRATION, client
        )
        return account, ttl

    async def verify_registration(
        self, email: str, otp: str, client: Optional[ClientInfo] = None
    ) -> AccountDoc:
        account = await self._require_account(
            email, "User not found. Please register again."
        )
        if account.verified:
            raise AlreadyVerifiedError("Email is already verified. You can now login.")
        account = await self._consume(
            account.identity, otp, ChallengePurpose.REGISTRATION, client
        )
        log.info("registration_verified", account_id=account.id_str)
        if not await self._email.send_welcome_email(
            account.identity, account.first_name or None
        ):
            log.warning("welcome_email_failed", account_id=account.id_str)
        return account

    async def resend_registration(
        self, email: str, client: Optional[ClientInfo] = None
    ) -> int:
        account = await self._require_account(
            email, "User not found. Please register again."
        )
        if account.verified:
            raise AlreadyVerifiedError("Email is already verified. You can now login.")
        return await self._issue_and_deliver(
            account, ChallengePurpose.REGISTRATION, client
        )

    # ── Password login (two steps) ───────────────────────────────────────────

    async def login(
        self,
        email: str,
        password: str,
        remember: bool = False,
        client: Optional[ClientInfo] = None,
    ) -> tuple[AccountDoc, int]:
        transition = await self._credentials.attempt_password(email, password, remember)
        if not transition.outcome.ok:
            log.info(
                "login_failed",
                error_code=transition.outcome.error.error_code,
                account_id=transition.account.id_str if transition.account else None,
            )
        account = transition.outcome.unwrap()

        if self._settings.require_verified_login and not account.verified:
            raise EmailNotVerifiedError(
                "Please verify your email address before logging in. "
                "Check your inbox for the verification code."
            )

        ttl = await self._issue_and_deliver(account, ChallengePurpose.LOGIN, client)
        log.info("login_otp_sent", account_id=account.id_str)
        return account, ttl

    async def complete_login(
        self, email: str, otp: str, client: Optional[ClientInfo] = None
    ) -> SessionResult:
        account = await self._consume(email, otp, ChallengePurpose.LOGIN, client)
        return await self._start_session(account, "pwd", client)

    # ── Generic codes ────────────────────────────────────────────────────────

    async def send_otp(
        self,
        email: str,
        purpose: ChallengePurpose = ChallengePurpose.VERIFICATION,
        client: Optional[ClientInfo] = None,
    ) -> int:
        account = await self._require_account(email, "User not found")
        return await self._issue_and_deliver(account, purpose, client)

    async def verify_otp(
        self,
        email: str,
        otp: str,
        purpose: ChallengePurpose = ChallengePurpose.VERIFICATION,
        client: Optional[ClientInfo] = None,
    ) -> AccountDoc:
        return await self._consume(email, otp, purpose, client)

    # ── Password reset ───────────────────────────────────────────────────────

    async def request_password_reset(
        self, email: str, client: Optional[ClientInfo] = None
    ) -> None:
        """Send a reset code if the account exists. Callers never learn which."""
        email = normalize_identity(email)
        await self._otp_logs.check_send_allowed(email)
        account = await self._credentials.get(email)
        if account is None:
            log.info("password_reset_unknown_email")
            return
        try:
            await self._issue_and_deliver(
                account, ChallengePurpose.PASSWORD_RESET, client
            )
        except EmailDeliveryError:
            # Same answer as an unknown email; the failed send is in otp_logs
            log.warning("password_reset_email_failed", account_id=account.id_str)
            return
        log.info("password_reset_otp_sent", account_id=account.id_str)

    async def reset_password(
        self,
        email: str,
        otp: str,
        new_password: str,
        client: Optional[ClientInfo] = None,
    ) -> AccountDoc:
        # Reject a weak password before the code is spent
        min_length = self._settings.min_password_length
        if not validate_password_length(new_password, min_length):
            raise WeakCredential(min_length)
        account = await self._consume(
            email, otp, ChallengePurpose.PASSWORD_RESET, client
        )
        transition = await self._credentials.change_credential(
            account.identity, new_password
        )
        account = transition.outcome.unwrap()
        log.info("password_reset_success", account_id=account.id_str)
        return account

    # ── Sessions ─────────────────────────────────────────────────────────────

    async def refresh(self, refresh_token: Optional[str]) -> SessionResult:
        if not refresh_token:
            raise AuthenticationError("Refresh token required")
        claims = self._tokens.verify_refresh(refresh_token)
        account = await self._credentials.get_by_id(claims.get("sub", ""))
        if account is None:
            raise AuthenticationError("Invalid token")
        amr = claims.get("amr") or ["pwd"]
        pair = self._tokens.issue_pair(account, auth_method=amr[0])
        return SessionResult(account=account, tokens=pair)

    async def logout(
        self, account: Optional[AccountDoc], client: Optional[ClientInfo] = None
    ) -> None:
        if account is None:
            return
        await self._activity.record(
            account.id,
            ActivityAction.LOGOUT,
            ActivityResource.USER,
            resource_id=account.id_str,
            client=client,
        )
        log.info("logout", account_id=account.id_str)

    # ── Profile ──────────────────────────────────────────────────────────────

    async def update_profile(
        self,
        account: AccountDoc,
        req: UpdateProfileRequest,
        client: Optional[ClientInfo] = None,
    ) -> tuple[AccountDoc, bool]:
        """Apply name changes and, when the email differs, the identity change.

        Returns the updated account and whether a new address awaits
        verification.
        """
        names = {
            k: v
            for k, v in (("first_name", req.first_name), ("last_name", req.last_name))
            if v is not None
        }
        if names:
            names["updated_at"] = self._clock()
            account = await self._credentials.save(account.model_copy(update=names))

        if req.email is None or req.email == account.identity:
            return account, False

        await self._otp_logs.check_send_allowed(normalize_identity(req.email))
        transition = await self._credentials.change_identity(account.identity, req.email)
        code = transition.outcome.unwrap()
        account = transition.account
        log.info("identity_changed", account_id=account.id_str)
        try:
            await self._deliver_code(
                account.identity,
                account.first_name,
                code,
                ChallengePurpose.VERIFICATION,
                client,
            )
        except EmailDeliveryError:
            # The change stands; a new code can be requested through send-otp
            log.warning("identity_change_email_failed", account_id=account.id_str)
        return account, True

    async def change_password(
        self,
        account: AccountDoc,
        current_password: str,
        new_password: str,
    ) -> AccountDoc:
        """Verify the current password (counting towards lockout), then replace it."""
        min_length = self._settings.min_password_length
        if not validate_password_length(new_password, min_length):
            raise WeakCredential(min_length)
        transition = await self._credentials.attempt_password(
            account.identity, current_password, account.remember_preference
        )
        transition.outcome.unwrap()
        transition = await self._credentials.change_credential(
            account.identity, new_password
        )
        account = transition.outcome.unwrap()
        log.info("password_changed", account_id=account.id_str)
        return account

    # ── GitHub OAuth ─────────────────────────────────────────────────────────

    async def github_login(
        self, user_info: dict[str, Any], client: Optional[ClientInfo] = None
    ) -> SessionResult:
        email = user_info.get("email") or ""
        github_id = user_info.get("provider_user_id") or ""
        if not email or not github_id:
            raise AuthenticationError("GitHub did not provide a usable email address")
        transition = await self._credentials.confirm_external_identity(
            email,
            github_id,
            github_username=user_info.get("username") or None,
            first_name=user_info.get("given_name", ""),
            last_name=user_info.get("family_name", ""),
        )
        account = transition.outcome.unwrap()
        return await self._start_session(account, "github", client)
