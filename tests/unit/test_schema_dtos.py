"""Unit tests for request and response DTOs."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from bson import ObjectId
from pydantic import ValidationError

from schemas.dto.requests.activity import ListActivityQuery
from schemas.dto.requests.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SendOtpRequest,
    UpdateProfileRequest,
    VerifyOtpRequest,
    VerifyPurposeOtpRequest,
)
from schemas.dto.requests.note import (
    MAX_TAGS,
    CreateNoteRequest,
    ListNotesQuery,
    UpdateNoteRequest,
)
from schemas.dto.responses.activity import ActivityResponse
from schemas.dto.responses.auth import UserProfileResponse
from schemas.dto.responses.common import PaginationMeta
from schemas.dto.responses.note import NoteResponse
from schemas.models.account import AccountDoc, ChallengePurpose
from schemas.models.activity import ActivityAction, ActivityLogDoc, ActivityResource
from schemas.models.note import NoteDoc


# ── Auth requests ─────────────────────────────────────────────────────────────


class TestRegisterRequest:
    def test_normalizes_email(self):
        req = RegisterRequest(email="  Ada@Example.COM ", password="x")
        assert req.email == "ada@example.com"

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            RegisterRequest(email="nope", password="x")

    def test_camel_case_names(self):
        req = RegisterRequest.model_validate(
            {"email": "a@b.co", "password": "x", "firstName": "Ada", "lastName": "L"}
        )
        assert req.first_name == "Ada"
        assert req.last_name == "L"

    def test_names_sanitized(self):
        req = RegisterRequest(email="a@b.co", password="x", first_name=" <Ada> ")
        assert req.first_name == "Ada"

    def test_short_password_left_to_credential_core(self):
        assert RegisterRequest(email="a@b.co", password="1").password == "1"


@pytest.mark.parametrize(
    "otp, ok",
    [("123456", True), ("012345", True), ("12345", False), ("12345a", False)],
    ids=["digits", "leading_zero", "short", "letter"],
)
def test_otp_pattern(otp, ok):
    if ok:
        assert VerifyOtpRequest(email="a@b.co", otp=otp).otp == otp
    else:
        with pytest.raises(ValidationError):
            VerifyOtpRequest(email="a@b.co", otp=otp)


class TestLoginRequest:
    def test_remember_me_alias(self):
        req = LoginRequest.model_validate(
            {"email": "a@b.co", "password": "p", "rememberMe": True}
        )
        assert req.remember_me is True

    def test_empty_password_rejected(self):
        with pytest.raises(ValidationError):
            LoginRequest(email="a@b.co", password="")


class TestPurposeRequests:
    def test_send_otp_default_purpose(self):
        assert SendOtpRequest(email="a@b.co").purpose == ChallengePurpose.VERIFICATION

    def test_verify_otp_explicit_purpose(self):
        req = VerifyPurposeOtpRequest(email="a@b.co", otp="123456", purpose="login")
        assert req.purpose == ChallengePurpose.LOGIN

    def test_unknown_purpose_rejected(self):
        with pytest.raises(ValidationError):
            SendOtpRequest(email="a@b.co", purpose="launch")


def test_reset_password_camel_case():
    req = ResetPasswordRequest.model_validate(
        {"email": "a@b.co", "otp": "123456", "newPassword": "n3w-password"}
    )
    assert req.new_password == "n3w-password"


def test_refresh_token_optional():
    assert RefreshTokenRequest().refresh_token is None
    req = RefreshTokenRequest.model_validate({"refreshToken": "abc"})
    assert req.refresh_token == "abc"


class TestUpdateProfileRequest:
    def test_all_optional(self):
        req = UpdateProfileRequest()
        assert req.first_name is None
        assert req.email is None

    def test_email_normalized(self):
        assert UpdateProfileRequest(email=" New@X.io ").email == "new@x.io"

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            UpdateProfileRequest(email="bad")

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            UpdateProfileRequest(first_name="")


def test_change_password_aliases():
    req = ChangePasswordRequest.model_validate(
        {"currentPassword": "old", "newPassword": "new-password"}
    )
    assert req.current_password == "old"
    assert req.new_password == "new-password"


# ── Note requests ─────────────────────────────────────────────────────────────


class TestCreateNoteRequest:
    def test_title_stripped(self):
        req = CreateNoteRequest(title="  Groceries ", content="milk")
        assert req.title == "Groceries"

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            CreateNoteRequest(title="   ", content="milk")

    def test_empty_content_rejected(self):
        with pytest.raises(ValidationError):
            CreateNoteRequest(title="t", content="")

    def test_tags_cleaned(self):
        req = CreateNoteRequest(
            title="t", content="c", tags=[" Work ", "work", "", "Ideas"]
        )
        assert req.tags == ["work", "ideas"]

    def test_too_many_tags(self):
        with pytest.raises(ValidationError):
            CreateNoteRequest(
                title="t", content="c", tags=[f"t{i}" for i in range(MAX_TAGS + 1)]
            )

    def test_is_public_alias(self):
        req = CreateNoteRequest.model_validate(
            {"title": "t", "content": "c", "isPublic": True}
        )
        assert req.is_public is True


class TestUpdateNoteRequest:
    def test_changes_only_includes_provided_fields(self):
        req = UpdateNoteRequest(title="New", is_public=False)
        assert req.changes() == {"title": "New", "is_public": False}

    def test_empty(self):
        assert UpdateNoteRequest().changes() == {}


@pytest.mark.parametrize(
    "params",
    [{"page": 0}, {"limit": 0}, {"limit": 101}],
    ids=["page_zero", "limit_zero", "limit_too_big"],
)
def test_list_notes_query_bounds(params):
    with pytest.raises(ValidationError):
        ListNotesQuery(**params)


def test_list_activity_query_defaults():
    q = ListActivityQuery()
    assert (q.page, q.limit, q.action) == (1, 20, None)
    assert ListActivityQuery(action="LOGIN").action == ActivityAction.LOGIN


# ── Responses ─────────────────────────────────────────────────────────────────


class TestUserProfileResponse:
    def test_from_account_hides_credential_state(self):
        acc = AccountDoc(
            _id=ObjectId(),
            identity="ada@example.com",
            credential_hash="$argon2id$secret",
            verified=True,
            failure_count=3,
            first_name="Ada",
        )
        data = UserProfileResponse.from_account(acc).model_dump()
        assert data["email"] == "ada@example.com"
        assert data["is_verified"] is True
        assert data["password_set"] is True
        for hidden in ("credential_hash", "failure_count", "pending_challenge"):
            assert hidden not in data

    def test_oauth_account_has_no_password(self):
        acc = AccountDoc(_id=ObjectId(), identity="gh@example.com", github_id="1")
        assert UserProfileResponse.from_account(acc).password_set is False


def test_note_response_from_doc():
    owner = ObjectId()
    note = NoteDoc(_id=ObjectId(), user_id=owner, title="t", content="c", tags=["a"])
    resp = NoteResponse.from_doc(note)
    assert resp.user_id == str(owner)
    assert resp.id == str(note.id)
    assert resp.tags == ["a"]


def test_activity_response_from_doc():
    entry = ActivityLogDoc(
        _id=ObjectId(),
        user_id=ObjectId(),
        action=ActivityAction.CREATE,
        resource=ActivityResource.NOTE,
        resource_id="n1",
        details={"title": "t"},
        timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    resp = ActivityResponse.from_doc(entry)
    assert resp.action == "CREATE"
    assert resp.resource == "NOTE"
    assert resp.details == {"title": "t"}


@pytest.mark.parametrize(
    "page, limit, total, pages, has_next",
    [
        (1, 10, 0, 0, False),
        (1, 10, 10, 1, False),
        (1, 10, 11, 2, True),
        (2, 10, 11, 2, False),
    ],
    ids=["empty", "exact", "overflow", "last_page"],
)
def test_pagination_meta(page, limit, total, pages, has_next):
    meta = PaginationMeta.build(page, limit, total)
    assert meta.pages == pages
    assert meta.has_next is has_next
