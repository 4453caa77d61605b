"""Console EmailProvider for local development.

Logs the message instead of delivering it. The OTP itself is included so a
developer can complete flows without a mail account; never enable this
backend in production.
"""

from typing import Optional

from infrastructure.email.sendgrid import otp_subject
from shared.logging import get_logger

log = get_logger(__name__)


class ConsoleEmailProvider:
    def __init__(self, brand: str = "SpeedForce Digital") -> None:
        self._brand = brand

    async def send_otp_email(
        self,
        email: str,
        user_name: Optional[str],
        otp_code: str,
        purpose: str,
        expires_in_minutes: int,
    ) -> bool:
        # "otp" is a redacted key, so the code goes out under a neutral name
        log.info(
            "console_email",
            to_email=email,
            subject=otp_subject(purpose, self._brand),
            one_time_value=otp_code,
            expires_in_minutes=expires_in_minutes,
        )
        return True

    async def send_welcome_email(self, email: str, user_name: Optional[str]) -> bool:
        log.info("console_email", to_email=email, subject=f"Welcome to {self._brand}")
        return True
