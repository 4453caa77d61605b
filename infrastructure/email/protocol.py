"""EmailProvider protocol - services depend on this, not the concrete implementation."""

from typing import Optional, Protocol


class EmailProvider(Protocol):
    async def send_otp_email(
        self,
        email: str,
        user_name: Optional[str],
        otp_code: str,
        purpose: str,
        expires_in_minutes: int,
    ) -> bool: ...

    async def send_welcome_email(
        self, email: str, user_name: Optional[str]
    ) -> bool: ...
