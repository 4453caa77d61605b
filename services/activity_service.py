"""
Activity log service.

Recording is best-effort: an activity write that fails is logged and the
primary operation (login, note update, ...) still succeeds.
"""

from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from pymongo.errors import PyMongoError

from repositories.activity_repository import ActivityRepository
from schemas.dto.responses.activity import ActivityStatsResponse
from schemas.models.activity import (
    ActivityAction,
    ActivityLogDoc,
    ActivityResource,
)
from shared.datetime_utils import utcnow
from shared.ip_utils import ClientInfo
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)


class ActivityService:
    def __init__(self, repo: ActivityRepository, clock=utcnow) -> None:
        self._repo = repo
        self._clock = clock

    async def record(
        self,
        user_id: ObjectId | str,
        action: ActivityAction,
        resource: ActivityResource,
        *,
        resource_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        client: Optional[ClientInfo] = None,
    ) -> None:
        entry = ActivityLogDoc(
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            details=details or {},
            ip_address=hash_ip(client.ip) if client else None,
            user_agent=client.user_agent if client else None,
            timestamp=self._clock(),
        )
        try:
            await self._repo.insert(entry)
        except PyMongoError as e:
            log.warning(
                "activity_log_write_failed",
                user_id=str(user_id),
                action=action.value,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def list_for_user(
        self,
        user_id: str,
        page: int,
        limit: int,
        action: Optional[ActivityAction] = None,
    ) -> tuple[list[ActivityLogDoc], int]:
        return await self._repo.list_for_user(
            user_id,
            skip=(page - 1) * limit,
            limit=limit,
            action=action.value if action else None,
        )

    async def stats(self, user_id: str) -> ActivityStatsResponse:
        by_action = await self._repo.count_by_action(user_id)
        note_activities = await self._repo.count_for_resource(
            user_id, ActivityResource.NOTE.value
        )
        return ActivityStatsResponse(
            total_activities=sum(by_action.values()),
            login_count=by_action.get(ActivityAction.LOGIN.value, 0),
            note_activities=note_activities,
            by_action=by_action,
        )
