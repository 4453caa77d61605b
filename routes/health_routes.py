"""
Health check endpoint.

GET /health pings MongoDB. Every account, note and audit record lives there,
so a failed ping reports "unhealthy" with 503.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> JSONResponse:
    try:
        await request.app.state.db.client.admin.command("ping")
    except PyMongoError as e:
        log.error("health_check_failed", dependency="mongodb", error=str(e))
        body = HealthResponse(status="unhealthy", checks={"mongodb": "error"})
        return JSONResponse(status_code=503, content=body.model_dump())
    body = HealthResponse(status="healthy", checks={"mongodb": "ok"})
    return JSONResponse(status_code=200, content=body.model_dump())
