"""
Request DTOs for authentication endpoints.

RegisterRequest               - POST /api/auth/register
VerifyOtpRequest              - POST /api/auth/verify-registration-otp, /complete-login
ResendOtpRequest              - POST /api/auth/resend-registration-otp
LoginRequest                  - POST /api/auth/login
SendOtpRequest                - POST /api/auth/send-otp
VerifyPurposeOtpRequest       - POST /api/auth/verify-otp
RequestPasswordResetRequest   - POST /api/auth/request-password-reset
ResetPasswordRequest          - POST /api/auth/reset-password-otp
RefreshTokenRequest           - POST /api/auth/refresh-token
UpdateProfileRequest          - PUT  /api/auth/profile
ChangePasswordRequest         - PUT  /api/auth/change-password

camelCase names accepted by the existing frontend (``firstName``,
``rememberMe``, ``newPassword`` ...) are kept as validation aliases.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from schemas.models.account import ChallengePurpose
from shared.validators import normalize_identity, sanitize_string, validate_email

_OTP_PATTERN = r"^\d{6}$"


def _checked_email(value: str) -> str:
    email = normalize_identity(value)
    if not validate_email(email):
        raise ValueError("Please provide a valid email address")
    return email


class _EmailBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return _checked_email(v)


class RegisterRequest(_EmailBody):
    """Request body for POST /api/auth/register.

    Password strength is enforced by the credential core, not here, so a
    short password surfaces as ``weak_credential`` rather than a generic
    validation error.
    """

    password: str
    first_name: str = Field(
        default="", max_length=50, validation_alias=AliasChoices("first_name", "firstName")
    )
    last_name: str = Field(
        default="", max_length=50, validation_alias=AliasChoices("last_name", "lastName")
    )

    @field_validator("first_name", "last_name")
    @classmethod
    def _clean_names(cls, v: str) -> str:
        return sanitize_string(v)


class VerifyOtpRequest(_EmailBody):
    """Request body for endpoints that consume a fixed-purpose code."""

    otp: str = Field(pattern=_OTP_PATTERN)


class ResendOtpRequest(_EmailBody):
    """Request body for POST /api/auth/resend-registration-otp."""


class LoginRequest(_EmailBody):
    """Request body for POST /api/auth/login."""

    password: str = Field(min_length=1)
    remember_me: bool = Field(
        default=False, validation_alias=AliasChoices("remember_me", "rememberMe")
    )


class SendOtpRequest(_EmailBody):
    """Request body for POST /api/auth/send-otp."""

    purpose: ChallengePurpose = ChallengePurpose.VERIFICATION


class VerifyPurposeOtpRequest(_EmailBody):
    """Request body for POST /api/auth/verify-otp."""

    otp: str = Field(pattern=_OTP_PATTERN)
    purpose: ChallengePurpose = ChallengePurpose.VERIFICATION


class RequestPasswordResetRequest(_EmailBody):
    """Request body for POST /api/auth/request-password-reset."""


class ResetPasswordRequest(_EmailBody):
    """Request body for POST /api/auth/reset-password-otp."""

    otp: str = Field(pattern=_OTP_PATTERN)
    new_password: str = Field(
        validation_alias=AliasChoices("new_password", "newPassword")
    )


class RefreshTokenRequest(BaseModel):
    """Optional body for POST /api/auth/refresh-token (the cookie wins when set)."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("refresh_token", "refreshToken")
    )


class UpdateProfileRequest(BaseModel):
    """Request body for PUT /api/auth/profile. Omitted fields are left unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=50,
        validation_alias=AliasChoices("first_name", "firstName"),
    )
    last_name: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=50,
        validation_alias=AliasChoices("last_name", "lastName"),
    )
    email: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _clean_names(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_string(v) if v is not None else None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return _checked_email(v) if v is not None else None


class ChangePasswordRequest(BaseModel):
    """Request body for PUT /api/auth/change-password."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(
        min_length=1,
        validation_alias=AliasChoices("current_password", "currentPassword"),
    )
    new_password: str = Field(
        validation_alias=AliasChoices("new_password", "newPassword")
    )
