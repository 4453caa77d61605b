"""
Note service: owner-scoped CRUD, search, stats and Markdown rendering.

Public notes can be read by any authenticated account; only the owner may
update or delete. Every mutation and every read of a single note is recorded
in the activity log.
"""

from __future__ import annotations

from typing import Optional

from errors import ForbiddenError, NotFoundError
from repositories.note_repository import NoteRepository
from schemas.dto.requests.note import CreateNoteRequest, UpdateNoteRequest
from schemas.dto.responses.note import NoteStatsResponse
from schemas.models.activity import ActivityAction, ActivityResource
from schemas.models.note import NoteDoc
from services.activity_service import ActivityService
from shared.datetime_utils import utcnow
from shared.ip_utils import ClientInfo
from shared.logging import get_logger
from shared.markdown import NoteRenderer

log = get_logger(__name__)


class NoteService:
    def __init__(
        self,
        repo: NoteRepository,
        activity: ActivityService,
        renderer: Optional[NoteRenderer] = None,
        clock=utcnow,
    ) -> None:
        self._repo = repo
        self._activity = activity
        self._renderer = renderer or NoteRenderer()
        self._clock = clock

    async def _load(self, note_id: str) -> NoteDoc:
        note = await self._repo.find_by_id(note_id)
        if note is None:
            raise NotFoundError("Note not found")
        return note

    async def _load_owned(self, note_id: str, user_id: str) -> NoteDoc:
        note = await self._load(note_id)
        if not note.is_owned_by(user_id):
            raise ForbiddenError("You do not have permission to modify this note")
        return note

    async def create(
        self, user_id: str, req: CreateNoteRequest, client: Optional[ClientInfo] = None
    ) -> NoteDoc:
        now = self._clock()
        note = await self._repo.insert(
            NoteDoc(
                user_id=user_id,
                title=req.title,
                content=req.content,
                tags=req.tags,
                is_public=req.is_public,
                created_at=now,
                updated_at=now,
            )
        )
        await self._activity.record(
            user_id,
            ActivityAction.CREATE,
            ActivityResource.NOTE,
            resource_id=note.id_str,
            details={"title": note.title},
            client=client,
        )
        log.info("note_created", note_id=note.id_str, user_id=user_id)
        return note

    async def list_for_owner(
        self, user_id: str, page: int, limit: int, search: Optional[str] = None
    ) -> tuple[list[NoteDoc], int]:
        return await self._repo.list_for_owner(
            user_id, skip=(page - 1) * limit, limit=limit, search=search
        )

    async def get(
        self, note_id: str, viewer_id: str, client: Optional[ClientInfo] = None
    ) -> NoteDoc:
        note = await self._load(note_id)
        if not note.is_owned_by(viewer_id) and not note.is_public:
            raise ForbiddenError("You do not have permission to view this note")
        await self._activity.record(
            viewer_id,
            ActivityAction.VIEW,
            ActivityResource.NOTE,
            resource_id=note.id_str,
            client=client,
        )
        return note

    async def update(
        self,
        note_id: str,
        user_id: str,
        req: UpdateNoteRequest,
        client: Optional[ClientInfo] = None,
    ) -> NoteDoc:
        note = await self._load_owned(note_id, user_id)
        changes = req.changes()
        if not changes:
            return note
        updated = await self._repo.update(note.id, changes, self._clock())
        if updated is None:
            raise NotFoundError("Note not found")
        await self._activity.record(
            user_id,
            ActivityAction.UPDATE,
            ActivityResource.NOTE,
            resource_id=updated.id_str,
            details={"fields": sorted(changes)},
            client=client,
        )
        return updated

    async def delete(
        self, note_id: str, user_id: str, client: Optional[ClientInfo] = None
    ) -> None:
        note = await self._load_owned(note_id, user_id)
        if not await self._repo.delete(note.id):
            raise NotFoundError("Note not found")
        await self._activity.record(
            user_id,
            ActivityAction.DELETE,
            ActivityResource.NOTE,
            resource_id=note.id_str,
            details={"title": note.title},
            client=client,
        )
        log.info("note_deleted", note_id=note.id_str, user_id=user_id)

    async def stats(self, user_id: str) -> NoteStatsResponse:
        notes = await self._repo.list_all_for_owner(user_id)
        public = sum(1 for n in notes if n.is_public)
        return NoteStatsResponse(
            total_notes=len(notes),
            public_notes=public,
            private_notes=len(notes) - public,
            total_characters=sum(len(n.content) for n in notes),
            total_words=sum(len(n.content.split()) for n in notes),
        )

    async def render(self, note_id: str, viewer_id: str) -> tuple[NoteDoc, str]:
        note = await self._load(note_id)
        if not note.is_owned_by(viewer_id) and not note.is_public:
            raise ForbiddenError("You do not have permission to view this note")
        return note, self._renderer.render(note.content)
