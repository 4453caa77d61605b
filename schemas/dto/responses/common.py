"""
Common response DTOs shared across multiple endpoints.

ErrorResponse    - standard error shape from AppError.to_dict()
ERROR_RESPONSES  - router-level OpenAPI entries built on ErrorResponse
HealthResponse   - GET /health
MessageResponse  - generic {success, message} shape used by many endpoints
PaginationMeta   - list endpoints (notes, activity)
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """Standard error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]


class MessageResponse(BaseModel):
    """Generic success/message response returned by several endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None
    code: Optional[str] = None


class PaginationMeta(BaseModel):
    """Reusable pagination metadata included in list responses."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    pages: int
    has_next: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        pages = (total + limit - 1) // limit if limit else 0
        return cls(page=page, limit=limit, total=total, pages=pages, has_next=page < pages)


# OpenAPI documentation for the AppError shapes every API router can return.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Validation failed"},
    401: {"model": ErrorResponse, "description": "Missing or invalid credentials"},
    403: {"model": ErrorResponse, "description": "Not permitted"},
    404: {"model": ErrorResponse, "description": "Not found"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
}
