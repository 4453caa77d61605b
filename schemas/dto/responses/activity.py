"""
Response DTOs for activity endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from schemas.dto.responses.common import PaginationMeta
from schemas.models.activity import ActivityLogDoc


class ActivityResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    action: str
    resource: str
    resource_id: Optional[str] = None
    details: dict[str, Any] = {}
    timestamp: datetime

    @classmethod
    def from_doc(cls, entry: ActivityLogDoc) -> "ActivityResponse":
        return cls(
            id=entry.id_str or "",
            action=entry.action,
            resource=entry.resource,
            resource_id=entry.resource_id,
            details=entry.details,
            timestamp=entry.timestamp,
        )


class ActivityListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    activities: list[ActivityResponse]
    pagination: PaginationMeta


class ActivityStatsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_activities: int
    login_count: int
    note_activities: int
    by_action: dict[str, int]
