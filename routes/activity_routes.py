"""
Activity routes under /api/activity.

GET /        - the caller's activity, newest first (page, limit, action)
GET /stats   - totals and per-action counts
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from dependencies import get_activity_service, get_current_user
from schemas.dto.requests.activity import ListActivityQuery
from schemas.dto.responses.activity import (
    ActivityListResponse,
    ActivityResponse,
    ActivityStatsResponse,
)
from schemas.dto.responses.common import ERROR_RESPONSES, PaginationMeta
from schemas.models.account import AccountDoc
from services.activity_service import ActivityService

router = APIRouter(
    prefix="/api/activity", tags=["activity"], responses=ERROR_RESPONSES
)


@router.get("", response_model=ActivityListResponse)
async def list_activity(
    query: Annotated[ListActivityQuery, Query()],
    account: AccountDoc = Depends(get_current_user),
    activity: ActivityService = Depends(get_activity_service),
) -> ActivityListResponse:
    entries, total = await activity.list_for_user(
        account.id_str, query.page, query.limit, query.action
    )
    return ActivityListResponse(
        activities=[ActivityResponse.from_doc(e) for e in entries],
        pagination=PaginationMeta.build(query.page, query.limit, total),
    )


@router.get("/stats", response_model=ActivityStatsResponse)
async def activity_stats(
    account: AccountDoc = Depends(get_current_user),
    activity: ActivityService = Depends(get_activity_service),
) -> ActivityStatsResponse:
    return await activity.stats(account.id_str)
