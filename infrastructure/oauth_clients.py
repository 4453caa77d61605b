"""OAuth provider strategy and Authlib client initialisation.

Only GitHub is offered. The strategy/registry shape stays so another
provider is one class plus one ``oauth.register`` call away. The Authlib
Starlette integration is async, so user-info fetching is awaited.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from authlib.integrations.starlette_client import OAuth

from config import OAuthProviderSettings
from shared.logging import get_logger

log = get_logger(__name__)


# ── Provider strategies ───────────────────────────────────────────────────────


class OAuthProviderStrategy(ABC):
    """Encapsulates everything that differs between OAuth providers."""

    @property
    @abstractmethod
    def key(self) -> str: ...

    @abstractmethod
    async def fetch_user_info(self, client: Any, token: Any) -> dict[str, Any]: ...


class GitHubStrategy(OAuthProviderStrategy):
    key = "github"

    async def fetch_user_info(self, client: Any, token: Any) -> dict[str, Any]:
        user_response = await client.get("user", token=token)
        user_response.raise_for_status()
        user = user_response.json()
        emails_response = await client.get("user/emails", token=token)
        emails = emails_response.json() if emails_response.status_code == 200 else []
        if not isinstance(emails, list):
            emails = []
        return extract_user_info_from_github(user, emails)


PROVIDER_STRATEGIES: dict[str, OAuthProviderStrategy] = {
    s.key: s() for s in [GitHubStrategy]
}


# ── Authlib init ─────────────────────────────────────────────────────────────


def init_oauth(settings: OAuthProviderSettings) -> Tuple[Optional[OAuth], Dict[str, Any]]:
    """Initialise Authlib OAuth clients for FastAPI/Starlette.

    Returns (oauth, providers_dict) - store both on app.state in create_app().
    Returns (None, {}) if no providers are configured.
    """
    oauth = OAuth()
    providers: Dict[str, Any] = {}

    if settings.github_oauth_client_id and settings.github_oauth_client_secret:
        github = oauth.register(
            name="github",
            client_id=settings.github_oauth_client_id,
            client_secret=settings.github_oauth_client_secret,
            access_token_url="https://github.com/login/oauth/access_token",
            authorize_url="https://github.com/login/oauth/authorize",
            api_base_url="https://api.github.com/",
            client_kwargs={"scope": "user:email"},
        )
        providers["github"] = github
        log.info("oauth_provider_initialized", provider="github")

    if not providers:
        log.warning("oauth_no_providers_configured")
        return None, {}

    return oauth, providers


# ── User-info extractors ──────────────────────────────────────────────────────


def _pick_github_email(
    userinfo: Dict[str, Any], email_data: List[Dict[str, Any]]
) -> Tuple[str, bool]:
    # GitHub may hide the address from /user; /user/emails is authoritative
    chosen = next((e for e in email_data if e.get("primary")), None)
    if chosen is None and email_data:
        chosen = email_data[0]
    if chosen is not None:
        return chosen.get("email", "").lower().strip(), bool(chosen.get("verified"))
    return (userinfo.get("email") or "").lower().strip(), False


def extract_user_info_from_github(
    userinfo: Dict[str, Any], email_data: List[Dict[str, Any]]
) -> Dict[str, Any]:
    """Normalise GitHub's /user and /user/emails payloads into the shape
    AuthService.github_login expects."""
    email, verified = _pick_github_email(userinfo, email_data)
    login = userinfo.get("login", "")
    display = (userinfo.get("name") or login).strip()
    given, _, family = display.partition(" ")
    return {
        "provider_user_id": str(userinfo.get("id", "")),
        "username": login,
        "email": email,
        "email_verified": verified,
        "given_name": given,
        "family_name": family.strip(),
    }
