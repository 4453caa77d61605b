"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv().
"""

import pytest


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def clock():
    from tests.fakes import FakeClock

    return FakeClock()


@pytest.fixture
def codes():
    from tests.fakes import SequenceCodes

    return SequenceCodes()


@pytest.fixture
def auth_settings():
    from config import AuthSettings

    return AuthSettings()


@pytest.fixture
def machine(clock, codes, auth_settings):
    from services.credentials import CredentialStateMachine
    from tests.fakes import FakeHasher

    return CredentialStateMachine(
        FakeHasher(), auth_settings, clock=clock, code_generator=codes
    )


@pytest.fixture
def account_store():
    from tests.fakes import InMemoryAccountStore

    return InMemoryAccountStore()


@pytest.fixture
def credential_service(account_store, machine):
    from services.credential_service import CredentialService

    return CredentialService(account_store, machine)
