"""Unit tests for services/auth_service.py: the HTTP-facing auth flows."""

import pytest

from config import JWTSettings
from errors import (
    AccountLocked,
    AccountNotFound,
    AlreadyVerifiedError,
    AuthenticationError,
    ChallengeExpired,
    CodeMismatch,
    EmailDeliveryError,
    EmailNotVerifiedError,
    IdentityTaken,
    InvalidCredential,
    PurposeMismatch,
    RateLimitError,
    WeakCredential,
)
from schemas.dto.requests.auth import UpdateProfileRequest
from schemas.models.account import ChallengePurpose
from schemas.models.activity import OtpEvent
from services.activity_service import ActivityService
from services.auth_service import AuthService
from services.otp_log_service import OtpLogService
from services.token_service import TokenService
from shared.ip_utils import ClientInfo
from tests.fakes import (
    InMemoryActivityRepository,
    InMemoryOtpLogRepository,
    RecordingEmailProvider,
)

EMAIL = "ada@example.com"
PASSWORD = "correct horse"
CLIENT = ClientInfo(ip="203.0.113.7", user_agent="pytest")


@pytest.fixture
def mailbox():
    return RecordingEmailProvider()


@pytest.fixture
def otp_repo():
    return InMemoryOtpLogRepository()


@pytest.fixture
def activity_repo():
    return InMemoryActivityRepository()


@pytest.fixture
def token_service():
    return TokenService(JWTSettings(jwt_secret="unit-test-secret"))


@pytest.fixture
def auth(
    credential_service,
    token_service,
    mailbox,
    otp_repo,
    activity_repo,
    auth_settings,
    clock,
):
    return AuthService(
        credential_service,
        token_service,
        mailbox,
        OtpLogService(otp_repo, auth_settings, clock=clock),
        ActivityService(activity_repo, clock=clock),
        auth_settings,
        clock=clock,
    )


@pytest.fixture
async def verified_account(auth, mailbox):
    await auth.register(EMAIL, PASSWORD, first_name="Ada", client=CLIENT)
    return await auth.verify_registration(
        EMAIL, mailbox.last_code("registration"), client=CLIENT
    )


class TestRegistration:
    async def test_register_sends_code(self, auth, mailbox, otp_repo):
        account, ttl = await auth.register(EMAIL, PASSWORD, "Ada", "L", CLIENT)
        assert ttl == 15
        assert account.verified is False
        assert mailbox.sent[-1]["email"] == EMAIL
        assert mailbox.sent[-1]["purpose"] == "registration"
        assert [e.action for e in otp_repo.entries] == ["sent"]
        assert otp_repo.entries[0].user_agent == "pytest"

    async def test_verify_marks_verified_and_welcomes(
        self, auth, mailbox, verified_account
    ):
        assert verified_account.verified is True
        assert mailbox.welcomed == [EMAIL]

    async def test_verify_twice_is_rejected(self, auth, verified_account):
        with pytest.raises(AlreadyVerifiedError):
            await auth.verify_registration(EMAIL, "123456")

    async def test_verify_unknown_email(self, auth):
        with pytest.raises(AccountNotFound):
            await auth.verify_registration("nobody@example.com", "123456")

    async def test_wrong_code_is_audited(self, auth, otp_repo):
        await auth.register(EMAIL, PASSWORD)
        with pytest.raises(CodeMismatch):
            await auth.verify_registration(EMAIL, "000000")
        failed = otp_repo.entries[-1]
        assert failed.action == "failed"
        assert failed.success is False
        assert failed.error_code == "code_mismatch"

    async def test_resend_replaces_code(self, auth, mailbox):
        await auth.register(EMAIL, PASSWORD)
        first = mailbox.last_code()
        await auth.resend_registration(EMAIL)
        second = mailbox.last_code()
        assert first != second
        with pytest.raises(CodeMismatch):
            await auth.verify_registration(EMAIL, first)
        account = await auth.verify_registration(EMAIL, second)
        assert account.verified

    async def test_duplicate_registration(self, auth, verified_account):
        with pytest.raises(IdentityTaken):
            await auth.register(EMAIL, PASSWORD)

    async def test_delivery_failure_raises_and_is_audited(
        self, auth, mailbox, otp_repo
    ):
        mailbox.succeed = False
        with pytest.raises(EmailDeliveryError):
            await auth.register(EMAIL, PASSWORD)
        assert otp_repo.entries[-1].success is False
        assert otp_repo.entries[-1].error_code == "email_delivery_failed"

    async def test_send_budget_per_email(self, auth, auth_settings):
        await auth.register(EMAIL, PASSWORD)
        for _ in range(auth_settings.otp_max_sends_per_window - 1):
            await auth.resend_registration(EMAIL)
        with pytest.raises(RateLimitError):
            await auth.resend_registration(EMAIL)

    async def test_send_budget_window_slides(self, auth, auth_settings, clock):
        await auth.register(EMAIL, PASSWORD)
        for _ in range(auth_settings.otp_max_sends_per_window - 1):
            await auth.resend_registration(EMAIL)
        clock.advance(minutes=61)
        assert await auth.resend_registration(EMAIL) == 15


class TestLogin:
    async def test_two_step_login(
        self, auth, mailbox, verified_account, activity_repo, token_service
    ):
        account, ttl = await auth.login(EMAIL, PASSWORD, remember=True)
        assert ttl == 10
        result = await auth.complete_login(EMAIL, mailbox.last_code("login"))
        assert result.account.last_login_at is not None
        claims = token_service.verify_access(result.tokens.access_token)
        assert claims["sub"] == verified_account.id_str
        assert claims["amr"] == ["pwd"]
        # remembered accounts get the long access lifetime
        assert result.tokens.access_ttl == 604800
        assert activity_repo.actions() == ["LOGIN"]

    async def test_wrong_password(self, auth, verified_account, mailbox):
        sent = len(mailbox.sent)
        with pytest.raises(InvalidCredential) as exc:
            await auth.login(EMAIL, "wrong password")
        assert exc.value.remaining_attempts == 3
        assert len(mailbox.sent) == sent

    async def test_lockout_after_five_failures(self, auth, verified_account):
        for _ in range(5):
            with pytest.raises(InvalidCredential):
                await auth.login(EMAIL, "wrong password")
        with pytest.raises(AccountLocked) as exc:
            await auth.login(EMAIL, PASSWORD)
        assert exc.value.remaining_minutes == 30

    async def test_unknown_email(self, auth):
        with pytest.raises(AccountNotFound):
            await auth.login("nobody@example.com", PASSWORD)

    async def test_unverified_login_allowed_by_default(self, auth, mailbox):
        await auth.register(EMAIL, PASSWORD)
        account, _ = await auth.login(EMAIL, PASSWORD)
        assert account.verified is False

    async def test_unverified_login_refused_when_required(
        self, auth, auth_settings
    ):
        auth_settings.require_verified_login = True
        await auth.register(EMAIL, PASSWORD)
        with pytest.raises(EmailNotVerifiedError):
            await auth.login(EMAIL, PASSWORD)

    async def test_expired_login_code(self, auth, mailbox, verified_account, clock):
        await auth.login(EMAIL, PASSWORD)
        clock.advance(minutes=11)
        with pytest.raises(ChallengeExpired):
            await auth.complete_login(EMAIL, mailbox.last_code("login"))


class TestPasswordReset:
    async def test_full_reset(self, auth, mailbox, verified_account):
        await auth.request_password_reset(EMAIL)
        code = mailbox.last_code("password_reset")
        await auth.reset_password(EMAIL, code, "a brand new password")
        await auth.login(EMAIL, "a brand new password")
        with pytest.raises(InvalidCredential):
            await auth.login(EMAIL, PASSWORD)

    async def test_unknown_email_is_silent(self, auth, mailbox):
        await auth.request_password_reset("nobody@example.com")
        assert mailbox.sent == []

    async def test_delivery_failure_looks_like_unknown_email(
        self, auth, mailbox, otp_repo, verified_account
    ):
        mailbox.succeed = False
        await auth.request_password_reset(EMAIL)
        assert otp_repo.entries[-1].success is False
        assert otp_repo.entries[-1].error_code == "email_delivery_failed"

    async def test_weak_password_keeps_code(self, auth, mailbox, verified_account):
        await auth.request_password_reset(EMAIL)
        code = mailbox.last_code("password_reset")
        with pytest.raises(WeakCredential):
            await auth.reset_password(EMAIL, code, "short")
        await auth.reset_password(EMAIL, code, "a brand new password")

    async def test_login_code_cannot_reset(self, auth, mailbox, verified_account):
        await auth.login(EMAIL, PASSWORD)
        with pytest.raises(PurposeMismatch):
            await auth.reset_password(
                EMAIL, mailbox.last_code("login"), "a brand new password"
            )


class TestSessions:
    async def test_refresh_issues_new_pair(self, auth, verified_account):
        pair = auth.tokens.issue_pair(verified_account, auth_method="github")
        result = await auth.refresh(pair.refresh_token)
        claims = auth.tokens.verify_access(result.tokens.access_token)
        assert claims["amr"] == ["github"]

    async def test_refresh_rejects_access_token(self, auth, verified_account):
        pair = auth.tokens.issue_pair(verified_account)
        with pytest.raises(AuthenticationError):
            await auth.refresh(pair.access_token)

    async def test_refresh_requires_token(self, auth):
        with pytest.raises(AuthenticationError):
            await auth.refresh(None)

    async def test_logout_records_activity(self, auth, verified_account, activity_repo):
        await auth.logout(verified_account, CLIENT)
        await auth.logout(None)
        assert activity_repo.actions() == ["LOGOUT"]


class TestProfile:
    async def test_name_change(self, auth, verified_account):
        req = UpdateProfileRequest(first_name="Augusta")
        account, changed = await auth.update_profile(verified_account, req)
        assert account.first_name == "Augusta"
        assert changed is False

    async def test_email_change_requires_verification(
        self, auth, mailbox, verified_account
    ):
        req = UpdateProfileRequest(email="new@example.com")
        account, changed = await auth.update_profile(verified_account, req)
        assert changed is True
        assert account.identity == "new@example.com"
        assert account.verified is False
        assert mailbox.sent[-1]["email"] == "new@example.com"
        verified = await auth.verify_otp(
            "new@example.com", mailbox.last_code("verification")
        )
        assert verified.verified is True

    async def test_email_change_survives_delivery_failure(
        self, auth, mailbox, verified_account
    ):
        mailbox.succeed = False
        req = UpdateProfileRequest(email="new@example.com")
        account, changed = await auth.update_profile(verified_account, req)
        assert changed is True
        assert account.identity == "new@example.com"

    async def test_email_change_respects_send_budget(
        self, auth, mailbox, otp_repo, verified_account, credential_service,
        auth_settings, clock,
    ):
        otp_logs = OtpLogService(otp_repo, auth_settings, clock=clock)
        for _ in range(auth_settings.otp_max_sends_per_window):
            await otp_logs.record("new@example.com", "verification", OtpEvent.SENT)
        sent_before = len(mailbox.sent)
        req = UpdateProfileRequest(email="new@example.com")
        with pytest.raises(RateLimitError):
            await auth.update_profile(verified_account, req)
        assert await credential_service.get(EMAIL) is not None
        assert await credential_service.get("new@example.com") is None
        assert len(mailbox.sent) == sent_before

    async def test_change_password(self, auth, verified_account):
        await auth.change_password(verified_account, PASSWORD, "a brand new password")
        await auth.login(EMAIL, "a brand new password")

    async def test_change_password_wrong_current_counts(
        self, auth, verified_account, credential_service
    ):
        with pytest.raises(InvalidCredential):
            await auth.change_password(
                verified_account, "wrong password", "a brand new password"
            )
        stored = await credential_service.get(EMAIL)
        assert stored.failure_count == 1


class TestGitHubLogin:
    async def test_creates_verified_account(self, auth, activity_repo):
        result = await auth.github_login(
            {
                "provider_user_id": "42",
                "email": "Octo@Example.com",
                "username": "octo",
                "given_name": "Octo",
                "family_name": "Cat",
            }
        )
        assert result.account.identity == "octo@example.com"
        assert result.account.verified is True
        assert result.account.has_password is False
        assert activity_repo.entries[-1].details == {"method": "github"}

    async def test_missing_email(self, auth):
        with pytest.raises(AuthenticationError):
            await auth.github_login({"provider_user_id": "42"})

    async def test_send_otp_for_unknown_account(self, auth):
        with pytest.raises(AccountNotFound):
            await auth.send_otp("nobody@example.com", ChallengePurpose.VERIFICATION)
