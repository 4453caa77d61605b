"""
Authentication routes under /api/auth.

POST /register                  - create account, email registration code
POST /verify-registration-otp   - consume registration code
POST /resend-registration-otp   - new registration code (unverified only)
POST /login                     - step one: password, then a login code by email
POST /complete-login            - step two: login code -> tokens + cookies
POST /send-otp, /verify-otp     - generic purpose-scoped codes
POST /request-password-reset    - reset code (never reveals account existence)
POST /reset-password-otp        - reset code + new password
POST /refresh-token             - refresh cookie/body -> new token pair
POST /logout                    - clear cookies
GET/PUT /profile, PUT /change-password
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.responses import JSONResponse

from dependencies import (
    get_auth_service,
    get_client,
    get_current_user,
    get_optional_user,
)
from routes.limiter import AUTH, OTP_SEND, PASSWORD_RESET, REGISTER, limiter
from schemas.dto.requests.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    RequestPasswordResetRequest,
    ResendOtpRequest,
    ResetPasswordRequest,
    SendOtpRequest,
    UpdateProfileRequest,
    VerifyOtpRequest,
    VerifyPurposeOtpRequest,
)
from schemas.dto.responses.auth import (
    LoginResponse,
    OtpSentResponse,
    ProfileResponse,
    TokenPairResponse,
    UserProfileResponse,
)
from schemas.dto.responses.common import ERROR_RESPONSES, MessageResponse
from schemas.models.account import AccountDoc
from services.auth_service import AuthService
from services.token_service import REFRESH_COOKIE
from shared.ip_utils import ClientInfo

router = APIRouter(prefix="/api/auth", tags=["auth"], responses=ERROR_RESPONSES)


@router.post("/register", status_code=201, response_model=OtpSentResponse)
@limiter.limit(REGISTER)
async def register(
    request: Request,
    body: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> OtpSentResponse:
    account, ttl = await auth.register(
        body.email, body.password, body.first_name, body.last_name, client
    )
    return OtpSentResponse(
        message=(
            "Registration successful! Please check your email for the "
            "verification code to complete your account setup."
        ),
        code="registration_otp_sent",
        email=account.identity,
        requires_verification=True,
        otp_expires_in=ttl,
    )


@router.post("/verify-registration-otp", response_model=ProfileResponse)
async def verify_registration_otp(
    request: Request,
    body: VerifyOtpRequest,
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> ProfileResponse:
    account = await auth.verify_registration(body.email, body.otp, client)
    return ProfileResponse(
        message="Email verified successfully! You can now login to your account.",
        user=UserProfileResponse.from_account(account),
    )


@router.post("/resend-registration-otp", response_model=OtpSentResponse)
@limiter.limit(OTP_SEND)
async def resend_registration_otp(
    request: Request,
    body: ResendOtpRequest,
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> OtpSentResponse:
    ttl = await auth.resend_registration(body.email, client)
    return OtpSentResponse(
        message="A new verification code has been sent to your email.",
        code="registration_otp_sent",
        email=body.email,
        requires_verification=True,
        otp_expires_in=ttl,
    )


@router.post("/login", response_model=OtpSentResponse)
@limiter.limit(AUTH)
async def login(
    request: Request,
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> OtpSentResponse:
    account, ttl = await auth.login(body.email, body.password, body.remember_me, client)
    return OtpSentResponse(
        message=(
            "Password verified successfully. Please check your email for the "
            "verification code to complete login."
        ),
        code="otp_required",
        email=account.identity,
        requires_otp=True,
        otp_expires_in=ttl,
    )


@router.post("/complete-login", response_model=LoginResponse)
@limiter.limit(AUTH)
async def complete_login(
    request: Request,
    response: Response,
    body: VerifyOtpRequest,
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> LoginResponse:
    session = await auth.complete_login(body.email, body.otp, client)
    auth.tokens.set_cookies(response, session.tokens)
    return LoginResponse(
        message="Login completed successfully. Welcome back!",
        access_token=session.tokens.access_token,
        refresh_token=session.tokens.refresh_token,
        user=UserProfileResponse.from_account(session.account),
    )


@router.post("/send-otp", response_model=OtpSentResponse)
@limiter.limit(OTP_SEND)
async def send_otp(
    request: Request,
    body: SendOtpRequest,
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> OtpSentResponse:
    ttl = await auth.send_otp(body.email, body.purpose, client)
    return OtpSentResponse(
        message="OTP sent successfully to your email",
        code="otp_sent",
        email=body.email,
        otp_expires_in=ttl,
    )


@router.post("/verify-otp", response_model=MessageResponse)
async def verify_otp(
    request: Request,
    body: VerifyPurposeOtpRequest,
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> MessageResponse:
    await auth.verify_otp(body.email, body.otp, body.purpose, client)
    return MessageResponse(
        success=True, message="OTP verified successfully", code="otp_verified"
    )


@router.post("/request-password-reset", response_model=OtpSentResponse)
@limiter.limit(PASSWORD_RESET)
async def request_password_reset(
    request: Request,
    body: RequestPasswordResetRequest,
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> OtpSentResponse:
    await auth.request_password_reset(body.email, client)
    return OtpSentResponse(
        message=(
            "If your email is registered with us, you will receive a password "
            "reset verification code shortly. Please check your inbox and spam folder."
        ),
        code="password_reset_requested",
    )


@router.post("/reset-password-otp", response_model=MessageResponse)
@limiter.limit(PASSWORD_RESET)
async def reset_password_otp(
    request: Request,
    body: ResetPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> MessageResponse:
    await auth.reset_password(body.email, body.otp, body.new_password, client)
    return MessageResponse(
        success=True,
        message=(
            "Password has been reset successfully. "
            "You can now log in with your new password."
        ),
        code="password_reset_success",
    )


@router.post("/refresh-token", response_model=TokenPairResponse)
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = Body(default=None),
    auth: AuthService = Depends(get_auth_service),
) -> TokenPairResponse:
    token = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    session = await auth.refresh(token)
    auth.tokens.set_cookies(response, session.tokens)
    return TokenPairResponse(
        access_token=session.tokens.access_token,
        refresh_token=session.tokens.refresh_token,
    )


@router.post("/logout")
async def logout(
    request: Request,
    account: Optional[AccountDoc] = Depends(get_optional_user),
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> JSONResponse:
    await auth.logout(account, client)
    response = JSONResponse(
        content={"success": True, "message": "Logout successful", "code": "logout_success"}
    )
    auth.tokens.clear_cookies(response)
    return response


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    account: AccountDoc = Depends(get_current_user),
) -> ProfileResponse:
    return ProfileResponse(user=UserProfileResponse.from_account(account))


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    body: UpdateProfileRequest,
    account: AccountDoc = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> ProfileResponse:
    account, email_changed = await auth.update_profile(account, body, client)
    message = (
        "Profile updated successfully. Please verify your new email."
        if email_changed
        else "Profile updated successfully"
    )
    return ProfileResponse(message=message, user=UserProfileResponse.from_account(account))


@router.put("/change-password", response_model=MessageResponse)
@limiter.limit(AUTH)
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    account: AccountDoc = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.change_password(account, body.current_password, body.new_password)
    return MessageResponse(
        success=True, message="Password changed successfully", code="password_changed"
    )
