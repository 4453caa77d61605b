"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Long-lived collaborators (credential state
machine, token service, email provider, OAuth clients) are built once in
create_app() and stored on app.state; request-scoped services are assembled
here around the shared database handle.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from pymongo.asynchronous.database import AsyncDatabase

from config import AppSettings
from errors import AuthenticationError, EmailNotVerifiedError
from infrastructure.email.protocol import EmailProvider
from repositories.account_store import MongoAccountStore
from repositories.activity_repository import ActivityRepository, OtpLogRepository
from repositories.note_repository import NoteRepository
from schemas.models.account import AccountDoc
from services.activity_service import ActivityService
from services.auth_service import AuthService
from services.credential_service import CredentialService
from services.note_service import NoteService
from services.otp_log_service import OtpLogService
from services.token_service import ACCESS_COOKIE, TokenService
from shared.ip_utils import ClientInfo, get_client_info


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


async def get_db(request: Request) -> AsyncDatabase:
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_client(request: Request) -> ClientInfo:
    return get_client_info(request)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_email_provider(request: Request) -> EmailProvider:
    return request.app.state.email_provider


def get_credential_service(
    request: Request, db: AsyncDatabase = Depends(get_db)
) -> CredentialService:
    return CredentialService(
        MongoAccountStore(db), request.app.state.credential_machine
    )


def get_activity_service(db: AsyncDatabase = Depends(get_db)) -> ActivityService:
    return ActivityService(ActivityRepository(db))


def get_otp_log_service(
    db: AsyncDatabase = Depends(get_db),
    settings: AppSettings = Depends(get_settings),
) -> OtpLogService:
    return OtpLogService(OtpLogRepository(db), settings.auth)


def get_auth_service(
    settings: AppSettings = Depends(get_settings),
    credentials: CredentialService = Depends(get_credential_service),
    tokens: TokenService = Depends(get_token_service),
    email: EmailProvider = Depends(get_email_provider),
    otp_logs: OtpLogService = Depends(get_otp_log_service),
    activity: ActivityService = Depends(get_activity_service),
) -> AuthService:
    return AuthService(credentials, tokens, email, otp_logs, activity, settings.auth)


def get_note_service(
    request: Request,
    db: AsyncDatabase = Depends(get_db),
    activity: ActivityService = Depends(get_activity_service),
) -> NoteService:
    return NoteService(NoteRepository(db), activity, request.app.state.note_renderer)


# ── Authentication ───────────────────────────────────────────────────────────


def _extract_access_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(ACCESS_COOKIE) or None


async def get_optional_user(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
    credentials: CredentialService = Depends(get_credential_service),
) -> Optional[AccountDoc]:
    """Resolve the caller's account, or None for anonymous / bad tokens."""
    token = _extract_access_token(request)
    if token is None:
        return None
    try:
        claims = tokens.verify_access(token)
    except AuthenticationError:
        return None
    return await credentials.get_by_id(claims.get("sub", ""))


async def get_current_user(
    request: Request,
    settings: AppSettings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
    credentials: CredentialService = Depends(get_credential_service),
) -> AccountDoc:
    """Require a valid access token for an existing account.

    With ``require_verified_session`` on, tokens of unverified accounts are
    refused with 403.
    """
    token = _extract_access_token(request)
    if token is None:
        raise AuthenticationError("Access token required")
    claims = tokens.verify_access(token)
    account = await credentials.get_by_id(claims.get("sub", ""))
    if account is None:
        raise AuthenticationError("Invalid token. User not found.")
    if settings.auth.require_verified_session and not account.verified:
        raise EmailNotVerifiedError(
            "Please verify your email address to access this resource."
        )
    return account
