"""
Response DTOs for note endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.dto.responses.common import PaginationMeta
from schemas.models.note import NoteDoc


class NoteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str
    title: str
    content: str
    tags: list[str]
    is_public: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, note: NoteDoc) -> "NoteResponse":
        return cls(
            id=note.id_str or "",
            user_id=str(note.user_id),
            title=note.title,
            content=note.content,
            tags=list(note.tags),
            is_public=note.is_public,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )


class NoteListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notes: list[NoteResponse]
    pagination: PaginationMeta


class NoteStatsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_notes: int
    public_notes: int
    private_notes: int
    total_characters: int
    total_words: int


class RenderedNoteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    html: str
