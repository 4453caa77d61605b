"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

The credential errors at the bottom are the expected outcomes of the
credential state machine. They are returned inside an Outcome by the core
and only raised when a caller unwraps it.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class GoneError(AppError):
    status_code = 410
    error_code = "gone"


class LockedError(AppError):
    status_code = 423
    error_code = "locked"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"


class EmailDeliveryError(AppError):
    status_code = 502
    error_code = "email_delivery_failed"


class StaleAccountError(ConflictError):
    """The account changed between load and save (compare-and-swap lost)."""

    error_code = "concurrent_update"


class AlreadyVerifiedError(ValidationError):
    error_code = "already_verified"


class EmailNotVerifiedError(ForbiddenError):
    error_code = "email_not_verified"


# ── Credential outcomes ──────────────────────────────────────────────────────


class IdentityTaken(ConflictError):
    error_code = "identity_taken"

    def __init__(self, identity: str) -> None:
        super().__init__("An account with this email already exists", field="email")
        self.identity = identity


class WeakCredential(ValidationError):
    error_code = "weak_credential"

    def __init__(self, min_length: int) -> None:
        super().__init__(
            f"Password must be at least {min_length} characters long",
            field="password",
            details={"min_length": min_length},
        )
        self.min_length = min_length


class AccountNotFound(NotFoundError):
    error_code = "account_not_found"

    def __init__(self, message: str = "Account not found") -> None:
        super().__init__(message)


class AccountLocked(LockedError):
    error_code = "account_locked"

    def __init__(self, remaining_minutes: int) -> None:
        super().__init__(
            "Your account has been temporarily locked due to multiple failed "
            f"login attempts. Please try again in {remaining_minutes} minutes "
            "or reset your password.",
            details={"lock_time_minutes": remaining_minutes},
        )
        self.remaining_minutes = remaining_minutes


class InvalidCredential(AuthenticationError):
    error_code = "invalid_credential"

    def __init__(self, remaining_attempts: int) -> None:
        if remaining_attempts > 0:
            message = (
                "Incorrect password. You have "
                f"{remaining_attempts} attempts remaining before your account is locked."
            )
        else:
            message = (
                "Too many failed login attempts. "
                "Your account will be locked temporarily."
            )
        super().__init__(message, details={"remaining_attempts": remaining_attempts})
        self.remaining_attempts = remaining_attempts


class CodeMismatch(ValidationError):
    error_code = "code_mismatch"

    def __init__(self) -> None:
        super().__init__(
            "Invalid verification code. Please check your email and try again.",
            field="otp",
        )


class ChallengeExpired(GoneError):
    error_code = "challenge_expired"

    def __init__(self) -> None:
        super().__init__("Verification code has expired. Please request a new one.")


class PurposeMismatch(ValidationError):
    error_code = "purpose_mismatch"

    def __init__(self, expected: str, declared: str) -> None:
        super().__init__(
            "Invalid verification code. Please request a new one.",
            field="purpose",
        )
        self.expected = expected
        self.declared = declared


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ())[1:]),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation failed",
                "code": "validation_error",
                "details": errors,
            },
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(
        request: Request, exc: RateLimitExceeded
    ) -> JSONResponse:
        err = RateLimitError(f"ratelimit exceeded {exc.detail}")
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
