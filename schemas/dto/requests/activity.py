"""
Request DTOs for activity endpoints.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.activity import ActivityAction


class ListActivityQuery(BaseModel):
    """Query parameters for GET /api/activity."""

    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    action: Optional[ActivityAction] = None
