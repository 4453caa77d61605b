"""
Note document model.

Maps to the `notes` MongoDB collection. Notes belong to exactly one account
(`user_id`); public notes are readable by any authenticated user, only the
owner may change or delete them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel, PyObjectId


class NoteDoc(MongoBaseModel):
    """Document model for the `notes` collection."""

    user_id: PyObjectId
    title: str
    content: str
    tags: list[str] = []
    is_public: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_owned_by(self, user_id: str) -> bool:
        return str(self.user_id) == str(user_id)
