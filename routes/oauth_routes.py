"""
GitHub OAuth routes under /api/auth.

GET /github           - redirect to GitHub's consent screen
GET /github/callback  - exchange the code, confirm the identity, set cookies
                        and hand the access token to the frontend

Authlib keeps the CSRF state in the Starlette session (SessionMiddleware).
Every failure ends in a redirect to the frontend login page, never a JSON error.
"""

from __future__ import annotations

import httpx
from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from config import AppSettings
from dependencies import get_auth_service, get_client, get_settings
from errors import AppError
from infrastructure.oauth_clients import PROVIDER_STRATEGIES
from routes.limiter import AUTH, limiter
from services.auth_service import AuthService
from shared.ip_utils import ClientInfo
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["oauth"])


@router.get("/github")
@limiter.limit(AUTH)
async def github_login(
    request: Request, settings: AppSettings = Depends(get_settings)
):
    github = request.app.state.oauth_providers.get("github")
    if github is None:
        return JSONResponse(
            status_code=503,
            content={"error": "GitHub OAuth not configured", "code": "oauth_unavailable"},
        )
    redirect_uri = settings.oauth.github_oauth_redirect_uri or str(
        request.url_for("github_callback")
    )
    return await github.authorize_redirect(request, redirect_uri)


@router.get("/github/callback", name="github_callback")
async def github_callback(
    request: Request,
    settings: AppSettings = Depends(get_settings),
    auth: AuthService = Depends(get_auth_service),
    client: ClientInfo = Depends(get_client),
) -> RedirectResponse:
    failure_url = f"{settings.frontend_url}/login?error=oauth_failed"
    github = request.app.state.oauth_providers.get("github")
    if github is None:
        return RedirectResponse(failure_url, status_code=302)

    try:
        token = await github.authorize_access_token(request)
        user_info = await PROVIDER_STRATEGIES["github"].fetch_user_info(github, token)
        session = await auth.github_login(user_info, client)
    except (OAuthError, httpx.HTTPError, AppError) as e:
        log.warning(
            "oauth_login_failed",
            provider="github",
            error=str(e),
            error_type=type(e).__name__,
        )
        return RedirectResponse(failure_url, status_code=302)

    response = RedirectResponse(
        f"{settings.frontend_url}/dashboard?token={session.tokens.access_token}",
        status_code=302,
    )
    auth.tokens.set_cookies(response, session.tokens)
    return response
