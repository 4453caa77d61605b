"""
Response DTOs for authentication endpoints.

UserProfileResponse   - public account shape, never carries credential state
OtpSentResponse       - register, resend, login step one, send-otp, reset request
LoginResponse         - POST /api/auth/complete-login  (200)
TokenPairResponse     - POST /api/auth/refresh-token  (200)
ProfileResponse       - GET/PUT /api/auth/profile, verify-registration-otp
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.account import AccountDoc


class UserProfileResponse(BaseModel):
    """Account profile returned to clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    password_set: bool
    github_username: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_account(cls, account: AccountDoc) -> "UserProfileResponse":
        return cls(
            id=account.id_str or "",
            email=account.identity,
            first_name=account.first_name,
            last_name=account.last_name,
            is_verified=account.verified,
            password_set=account.has_password,
            github_username=account.github_username,
            last_login_at=account.last_login_at,
            created_at=account.created_at,
        )


class OtpSentResponse(BaseModel):
    """Returned whenever a one-time code was (or, for reset requests, may have been) sent."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    code: str
    email: Optional[str] = None
    requires_otp: bool = False
    requires_verification: bool = False
    otp_expires_in: Optional[int] = None  # minutes


class LoginResponse(BaseModel):
    """Response body for POST /api/auth/complete-login (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    access_token: str
    refresh_token: str
    user: UserProfileResponse


class TokenPairResponse(BaseModel):
    """Response body for POST /api/auth/refresh-token (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    access_token: str
    refresh_token: str


class ProfileResponse(BaseModel):
    """Profile wrapper used by profile reads/updates and registration verification."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: Optional[str] = None
    user: UserProfileResponse
