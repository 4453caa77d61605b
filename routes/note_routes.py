"""
Note routes under /api/notes. Every endpoint requires a verified session.

POST   /                  - create
GET    /                  - list own notes (page, limit, q)
GET    /stats             - totals for the caller
GET    /{note_id}         - owner or public note
PUT    /{note_id}         - owner only, partial update
DELETE /{note_id}         - owner only
GET    /{note_id}/render  - Markdown -> safe HTML
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from dependencies import get_client, get_current_user, get_note_service
from schemas.dto.requests.note import (
    CreateNoteRequest,
    ListNotesQuery,
    UpdateNoteRequest,
)
from schemas.dto.responses.common import (
    ERROR_RESPONSES,
    MessageResponse,
    PaginationMeta,
)
from schemas.dto.responses.note import (
    NoteListResponse,
    NoteResponse,
    NoteStatsResponse,
    RenderedNoteResponse,
)
from schemas.models.account import AccountDoc
from services.note_service import NoteService
from shared.ip_utils import ClientInfo

router = APIRouter(prefix="/api/notes", tags=["notes"], responses=ERROR_RESPONSES)


@router.post("", status_code=201, response_model=NoteResponse)
async def create_note(
    body: CreateNoteRequest,
    account: AccountDoc = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    client: ClientInfo = Depends(get_client),
) -> NoteResponse:
    note = await notes.create(account.id_str, body, client)
    return NoteResponse.from_doc(note)


@router.get("", response_model=NoteListResponse)
async def list_notes(
    query: Annotated[ListNotesQuery, Query()],
    account: AccountDoc = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
) -> NoteListResponse:
    items, total = await notes.list_for_owner(
        account.id_str, query.page, query.limit, query.q
    )
    return NoteListResponse(
        notes=[NoteResponse.from_doc(n) for n in items],
        pagination=PaginationMeta.build(query.page, query.limit, total),
    )


@router.get("/stats", response_model=NoteStatsResponse)
async def note_stats(
    account: AccountDoc = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
) -> NoteStatsResponse:
    return await notes.stats(account.id_str)


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: str,
    account: AccountDoc = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    client: ClientInfo = Depends(get_client),
) -> NoteResponse:
    note = await notes.get(note_id, account.id_str, client)
    return NoteResponse.from_doc(note)


@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: str,
    body: UpdateNoteRequest,
    account: AccountDoc = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    client: ClientInfo = Depends(get_client),
) -> NoteResponse:
    note = await notes.update(note_id, account.id_str, body, client)
    return NoteResponse.from_doc(note)


@router.delete("/{note_id}", response_model=MessageResponse)
async def delete_note(
    note_id: str,
    account: AccountDoc = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    client: ClientInfo = Depends(get_client),
) -> MessageResponse:
    await notes.delete(note_id, account.id_str, client)
    return MessageResponse(success=True, message="Note deleted successfully")


@router.get("/{note_id}/render", response_model=RenderedNoteResponse)
async def render_note(
    note_id: str,
    account: AccountDoc = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
) -> RenderedNoteResponse:
    note, html = await notes.render(note_id, account.id_str)
    return RenderedNoteResponse(id=note.id_str, title=note.title, html=html)
