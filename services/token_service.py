"""
JWT issuance and verification plus the auth cookie helpers.

RS256 is used when both keys are configured, HS256 with JWT_SECRET otherwise.
Tokens are stateless: a refresh token is just a longer-lived JWT with
``type=refresh``. Access tokens issued to accounts that asked to be
remembered at login live for ``remember_access_token_ttl_seconds``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import jwt
from fastapi import Response

from config import JWTSettings
from errors import AuthenticationError
from schemas.models.account import AccountDoc
from shared.datetime_utils import utcnow

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_ttl: int
    refresh_ttl: int


class TokenService:
    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings
        if settings.use_rs256:
            # Keys may arrive through env vars with literal \n sequences
            self._signing_key: Any = settings.jwt_private_key.replace("\\n", "\n")
            self._verify_key: Any = settings.jwt_public_key.replace("\\n", "\n")
            self._algorithm = "RS256"
        else:
            if not settings.jwt_secret:
                raise RuntimeError(
                    "JWT_SECRET must be set when RS256 keys are not provided"
                )
            self._signing_key = self._verify_key = settings.jwt_secret
            self._algorithm = "HS256"

    def _encode(
        self, account: AccountDoc, ttl: int, token_type: str, auth_method: str
    ) -> str:
        now = utcnow()
        claims = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "sub": str(account.id),
            "email": account.identity,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl)).timestamp()),
            "type": token_type,
            "amr": [auth_method],  # Authentication Methods References
        }
        return jwt.encode(claims, self._signing_key, algorithm=self._algorithm)

    def _decode(self, token: str, expected_type: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired. Please log in again.")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")
        if claims.get("type") != expected_type:
            raise AuthenticationError("Invalid token type")
        return claims

    def access_ttl_for(self, remember: bool) -> int:
        if remember:
            return self._settings.remember_access_token_ttl_seconds
        return self._settings.access_token_ttl_seconds

    def issue_pair(
        self,
        account: AccountDoc,
        auth_method: str = "pwd",
        remember: Optional[bool] = None,
    ) -> TokenPair:
        if remember is None:
            remember = account.remember_preference
        access_ttl = self.access_ttl_for(remember)
        refresh_ttl = self._settings.refresh_token_ttl_seconds
        return TokenPair(
            access_token=self._encode(account, access_ttl, "access", auth_method),
            refresh_token=self._encode(account, refresh_ttl, "refresh", auth_method),
            access_ttl=access_ttl,
            refresh_ttl=refresh_ttl,
        )

    def verify_access(self, token: str) -> dict[str, Any]:
        return self._decode(token, "access")

    def verify_refresh(self, token: str) -> dict[str, Any]:
        return self._decode(token, "refresh")

    # ── Cookies ──────────────────────────────────────────────────────────────

    def set_cookies(self, response: Response, pair: TokenPair) -> None:
        response.set_cookie(
            ACCESS_COOKIE,
            value=pair.access_token,
            httponly=True,
            secure=self._settings.cookie_secure,
            samesite="strict",
            path="/",
            max_age=pair.access_ttl,
        )
        response.set_cookie(
            REFRESH_COOKIE,
            value=pair.refresh_token,
            httponly=True,
            secure=self._settings.cookie_secure,
            samesite="strict",
            path="/",
            max_age=pair.refresh_ttl,
        )

    def clear_cookies(self, response: Response) -> None:
        for name in (ACCESS_COOKIE, REFRESH_COOKIE):
            response.delete_cookie(
                name,
                httponly=True,
                secure=self._settings.cookie_secure,
                samesite="strict",
                path="/",
            )
