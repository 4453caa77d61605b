"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.sessions import SessionMiddleware

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.console import ConsoleEmailProvider
from infrastructure.email.sendgrid import SendGridProvider
from infrastructure.oauth_clients import init_oauth
from middleware.request_logging import RequestLoggingMiddleware
from repositories.account_store import MongoAccountStore
from repositories.activity_repository import ActivityRepository, OtpLogRepository
from repositories.note_repository import NoteRepository
from routes.activity_routes import router as activity_router
from routes.auth_routes import router as auth_router
from routes.health_routes import router as health_router
from routes.limiter import limiter
from routes.note_routes import router as note_router
from routes.oauth_routes import router as oauth_router
from services.credentials import CredentialStateMachine
from services.token_service import TokenService
from shared.crypto import Argon2Hasher
from shared.logging import get_logger, setup_logging
from shared.markdown import NoteRenderer


async def ensure_indexes(db) -> None:
    await MongoAccountStore(db).ensure_indexes()
    await NoteRepository(db).ensure_indexes()
    await ActivityRepository(db).ensure_indexes()
    await OtpLogRepository(db).ensure_indexes()


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(
        log_level=settings.logging.log_level,
        log_format=settings.logging.log_format,
        production=settings.is_production,
    )
    log = get_logger(__name__)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
            environment=settings.env,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]

        http_client = httpx.AsyncClient(timeout=10.0)
        app.state.http_client = http_client
        if settings.email.email_backend == "console":
            app.state.email_provider = ConsoleEmailProvider(
                settings.email.sendgrid_from_name
            )
        else:
            app.state.email_provider = SendGridProvider(
                settings.email, http_client, app_url=settings.frontend_url
            )

        await ensure_indexes(app.state.db)
        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await http_client.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=None if settings.is_production else settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.credential_machine = CredentialStateMachine(Argon2Hasher(), settings.auth)
    app.state.token_service = TokenService(settings.jwt)
    app.state.note_renderer = NoteRenderer()
    app.state.oauth, app.state.oauth_providers = init_oauth(settings.oauth)

    limiter.enabled = settings.rate_limit.rate_limit_enabled
    app.state.limiter = limiter

    # Middleware order: last added runs first
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        same_site="lax",
        https_only=settings.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(oauth_router)
    app.include_router(note_router)
    app.include_router(activity_router)

    return app
