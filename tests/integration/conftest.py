"""
Integration test configuration.

The real application is built with create_app(); the lifespan is not run
(TestClient is used without a context manager) so no MongoDB connection is
made. Services that would talk to the database are replaced through
dependency_overrides with the in-memory collaborators from tests/fakes.py.
"""

import pytest
from fastapi.testclient import TestClient

from app import create_app
from config import (
    AppSettings,
    DatabaseSettings,
    EmailSettings,
    JWTSettings,
    RateLimitSettings,
)
from dependencies import (
    get_activity_service,
    get_credential_service,
    get_email_provider,
    get_note_service,
    get_otp_log_service,
)
from services.activity_service import ActivityService
from services.credential_service import CredentialService
from services.credentials import CredentialStateMachine
from services.note_service import NoteService
from services.otp_log_service import OtpLogService
from tests.fakes import (
    FakeHasher,
    InMemoryAccountStore,
    InMemoryActivityRepository,
    InMemoryNoteRepository,
    InMemoryOtpLogRepository,
    RecordingEmailProvider,
)
from tests.integration.flows import login, register_and_verify

class StubRenderer:
    def render(self, source: str) -> str:
        return f"<p>{source}</p>"


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def settings():
    return AppSettings(
        secret_key="integration-secret",
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        jwt=JWTSettings(
            jwt_secret="integration-jwt-secret",
            jwt_private_key="",
            jwt_public_key="",
            cookie_secure=False,
        ),
        email=EmailSettings(email_backend="console"),
        rate_limit=RateLimitSettings(rate_limit_enabled=False),
    )


@pytest.fixture
def mailbox():
    return RecordingEmailProvider()


@pytest.fixture
def account_store():
    return InMemoryAccountStore()


@pytest.fixture
def activity_repo():
    return InMemoryActivityRepository()


@pytest.fixture
def app(settings, mailbox, account_store, activity_repo):
    app = create_app(settings)
    credentials = CredentialService(
        account_store, CredentialStateMachine(FakeHasher(), settings.auth)
    )
    activity = ActivityService(activity_repo)
    otp_logs = OtpLogService(InMemoryOtpLogRepository(), settings.auth)
    notes = NoteService(InMemoryNoteRepository(), activity, StubRenderer())

    app.dependency_overrides[get_credential_service] = lambda: credentials
    app.dependency_overrides[get_activity_service] = lambda: activity
    app.dependency_overrides[get_otp_log_service] = lambda: otp_logs
    app.dependency_overrides[get_email_provider] = lambda: mailbox
    app.dependency_overrides[get_note_service] = lambda: notes
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def session(client, mailbox):
    """A verified, logged-in account; returns its bearer headers."""
    register_and_verify(client, mailbox, "ada@example.com", firstName="Ada")
    body = login(client, mailbox, "ada@example.com")
    client.cookies.clear()
    return {"Authorization": f"Bearer {body['access_token']}"}
