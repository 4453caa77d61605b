"""
Note persistence (`notes` collection).

Listing is owner-scoped and newest first. Free-text search is a
case-insensitive regex over title and content; the escaped user input never
reaches the regex engine as a pattern.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase

from schemas.models.note import NoteDoc


class NoteRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._col: AsyncCollection = db["notes"]

    @staticmethod
    def _owner_query(user_id: str, search: Optional[str]) -> dict[str, Any]:
        query: dict[str, Any] = {"user_id": ObjectId(user_id)}
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"content": pattern}]
        return query

    async def insert(self, note: NoteDoc) -> NoteDoc:
        result = await self._col.insert_one(note.to_mongo())
        return note.model_copy(update={"id": result.inserted_id})

    async def find_by_id(self, note_id: str) -> Optional[NoteDoc]:
        if not ObjectId.is_valid(note_id):
            return None
        doc = await self._col.find_one({"_id": ObjectId(note_id)})
        return NoteDoc.from_mongo(doc)

    async def list_for_owner(
        self,
        user_id: str,
        *,
        skip: int,
        limit: int,
        search: Optional[str] = None,
    ) -> tuple[list[NoteDoc], int]:
        query = self._owner_query(user_id, search)
        total = await self._col.count_documents(query)
        cursor = (
            self._col.find(query).sort("updated_at", DESCENDING).skip(skip).limit(limit)
        )
        notes = [NoteDoc.from_mongo(doc) async for doc in cursor]
        return notes, total

    async def list_all_for_owner(self, user_id: str) -> list[NoteDoc]:
        cursor = self._col.find({"user_id": ObjectId(user_id)})
        return [NoteDoc.from_mongo(doc) async for doc in cursor]

    async def update(
        self, note_id: ObjectId, changes: dict[str, Any], updated_at: datetime
    ) -> Optional[NoteDoc]:
        doc = await self._col.find_one_and_update(
            {"_id": note_id},
            {"$set": {**changes, "updated_at": updated_at}},
            return_document=ReturnDocument.AFTER,
        )
        return NoteDoc.from_mongo(doc)

    async def delete(self, note_id: ObjectId) -> bool:
        result = await self._col.delete_one({"_id": note_id})
        return result.deleted_count == 1

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("user_id", ASCENDING), ("updated_at", DESCENDING)]
        )
        await self._col.create_index([("is_public", ASCENDING)])
