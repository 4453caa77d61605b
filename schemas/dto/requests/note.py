"""
Request DTOs for note endpoints.

CreateNoteRequest  - POST /api/notes
UpdateNoteRequest  - PUT  /api/notes/{note_id}
ListNotesQuery     - GET  /api/notes
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MAX_TAGS = 20


def _clean_tags(tags: list[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip().lower()[:30]
        if tag and tag not in seen:
            seen.append(tag)
    if len(seen) > MAX_TAGS:
        raise ValueError(f"A note can have at most {MAX_TAGS} tags")
    return seen


class CreateNoteRequest(BaseModel):
    """Request body for POST /api/notes."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=50000)
    tags: list[str] = []
    is_public: bool = Field(
        default=False, validation_alias=AliasChoices("is_public", "isPublic")
    )

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)


class UpdateNoteRequest(BaseModel):
    """Request body for PUT /api/notes/{note_id}.

    All fields are optional; only provided fields are updated.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1, max_length=50000)
    tags: Optional[list[str]] = None
    is_public: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("is_public", "isPublic")
    )

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _clean_tags(v) if v is not None else None

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class ListNotesQuery(BaseModel):
    """Query parameters for GET /api/notes."""

    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    q: Optional[str] = Field(default=None, max_length=200)
