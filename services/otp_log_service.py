"""
OTP audit trail and per-email send budget.

Every code that is sent, verified or rejected leaves an `otp_logs` entry.
The same entries back the send budget: more than ``otp_max_sends_per_window``
sends to one address inside the window is refused with a 429. This is
independent of the per-IP slowapi limits and of the credential core, which
has no rate limiting of its own.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from pymongo.errors import PyMongoError

from config import AuthSettings
from errors import RateLimitError
from repositories.activity_repository import OtpLogRepository
from schemas.models.activity import OtpEvent, OtpLogDoc
from shared.datetime_utils import utcnow
from shared.ip_utils import ClientInfo
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)


class OtpLogService:
    def __init__(
        self, repo: OtpLogRepository, settings: AuthSettings, clock=utcnow
    ) -> None:
        self._repo = repo
        self._settings = settings
        self._clock = clock

    async def check_send_allowed(self, email: str) -> None:
        window = self._settings.otp_send_window_minutes
        since = self._clock() - timedelta(minutes=window)
        sent = await self._repo.count_sent_since(email, since)
        if sent >= self._settings.otp_max_sends_per_window:
            log.warning("otp_send_budget_exhausted", sent=sent, window_minutes=window)
            raise RateLimitError(
                "Too many verification codes requested for this email. "
                "Please try again later.",
                details={"retry_after_minutes": window},
            )

    async def record(
        self,
        email: str,
        purpose: str,
        event: OtpEvent,
        *,
        success: bool = True,
        error_code: Optional[str] = None,
        client: Optional[ClientInfo] = None,
    ) -> None:
        """Append an audit entry. A storage failure is logged, never raised."""
        entry = OtpLogDoc(
            email=email,
            purpose=str(getattr(purpose, "value", purpose)),
            action=event,
            success=success,
            error_code=error_code,
            ip=hash_ip(client.ip) if client else None,
            user_agent=client.user_agent if client else None,
            timestamp=self._clock(),
        )
        try:
            await self._repo.insert(entry)
        except PyMongoError as e:
            log.warning(
                "otp_log_write_failed",
                event_name=event.value,
                error=str(e),
                error_type=type(e).__name__,
            )
