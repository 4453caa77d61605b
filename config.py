"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Sub-configs are independent BaseSettings classes so each concern can be
instantiated on its own in tests; AppSettings composes them in a
model_validator. SESSION_SECRET is accepted as an alias for SECRET_KEY
(the session middleware used by the OAuth flow reads it).
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "speedforce"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "speedforce"
    jwt_audience: str = "speedforce.api"
    access_token_ttl_seconds: int = 900
    # Access token lifetime when the user asked to be remembered at login
    remember_access_token_ttl_seconds: int = 604800
    refresh_token_ttl_seconds: int = 604800
    cookie_secure: bool = True

    # RS256 keys (preferred)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 fallback (used when RS256 keys are absent)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)


class AuthSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    max_failed_attempts: int = 5
    lockout_minutes: int = 30
    min_password_length: int = 8

    registration_otp_ttl_minutes: int = 15
    login_otp_ttl_minutes: int = 10
    password_reset_otp_ttl_minutes: int = 15
    verification_otp_ttl_minutes: int = 10

    # Per-email OTP send budget, checked against the otp_logs audit trail
    otp_max_sends_per_window: int = 5
    otp_send_window_minutes: int = 60

    # Verification gating policy. Password login of unverified accounts is
    # allowed by default; bearer tokens of unverified accounts are not.
    require_verified_login: bool = False
    require_verified_session: bool = True


class OAuthProviderSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    github_oauth_client_id: str = ""
    github_oauth_client_secret: str = ""
    github_oauth_redirect_uri: str = ""


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # "console" logs outgoing mail instead of sending it (local development)
    email_backend: Literal["sendgrid", "console"] = "sendgrid"
    sendgrid_api_key: str = ""
    sendgrid_from_email: str = "noreply@speedforce.dev"
    sendgrid_from_name: str = "SpeedForce Digital"


class RateLimitSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    rate_limit_enabled: bool = True
    # Any `limits` storage URI; memory:// keeps counters per process
    rate_limit_storage_uri: str = "memory://"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    secret_key: str = ""
    session_secret: str = ""  # alias used by older deployments
    env: str = "development"
    app_name: str = "SpeedForce Notes"
    frontend_url: str = "http://localhost:3000"

    cors_origins: list[str] = ["http://localhost:3000"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    auth: Optional[AuthSettings] = None
    oauth: Optional[OAuthProviderSettings] = None
    email: Optional[EmailSettings] = None
    rate_limit: Optional[RateLimitSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs_and_secret(self) -> "AppSettings":
        if not self.secret_key and self.session_secret:
            self.secret_key = self.session_secret

        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.auth is None:
            self.auth = AuthSettings()
        if self.oauth is None:
            self.oauth = OAuthProviderSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.rate_limit is None:
            self.rate_limit = RateLimitSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
