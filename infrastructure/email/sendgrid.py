"""SendGrid implementation of EmailProvider.

Talks to the v3 Mail Send endpoint directly over the shared httpx client.
Bodies are rendered from the Jinja2 templates under templates/emails.
Delivery failures are logged and reported as False; the caller decides
whether that fails the request.
"""

import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from shared.logging import get_logger

log = get_logger(__name__)

_SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)

_PURPOSE_SUBJECTS = {
    "registration": "Verify your email",
    "login": "Your login code",
    "password_reset": "Reset your password",
    "verification": "Your verification code",
}

_PURPOSE_INTROS = {
    "registration": "Use this code to finish creating your account.",
    "login": "Use this code to complete your sign in.",
    "password_reset": "Use this code to choose a new password.",
    "verification": "Use this code to confirm your email address.",
}


def load_templates(template_dir: str = _DEFAULT_TEMPLATE_DIR) -> Environment:
    return Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=select_autoescape(["html", "xml"]),
    )


def otp_subject(purpose: str, brand: str) -> str:
    return f"{_PURPOSE_SUBJECTS.get(purpose, 'Your OTP code')} - {brand}"


def otp_text_body(
    otp_code: str, user_name: Optional[str], purpose: str, expires_in_minutes: int, brand: str
) -> str:
    return (
        f"{otp_subject(purpose, brand)}\n\n"
        f"Hello{f' {user_name}' if user_name else ''},\n\n"
        f"{_PURPOSE_INTROS.get(purpose, '')}\n\n"
        f"Your code is: {otp_code}\n\n"
        f"This code expires in {expires_in_minutes} minutes. "
        f"If you did not request it, you can ignore this email.\n\n"
        f"{brand}"
    )


class SendGridProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: httpx.AsyncClient,
        app_url: str = "http://localhost:3000",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_url = app_url
        self._jinja = load_templates(template_dir)

    async def _send(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.sendgrid_api_key:
            log.error("sendgrid_send_failed", reason="api_key_not_configured")
            return False

        content = []
        if text_body:
            content.append({"type": "text/plain", "value": text_body})
        content.append({"type": "text/html", "value": html_body})

        recipient: dict = {"email": to_email}
        if to_name:
            recipient["name"] = to_name

        payload: dict = {
            "personalizations": [{"to": [recipient]}],
            "from": {
                "email": self._settings.sendgrid_from_email,
                "name": self._settings.sendgrid_from_name,
            },
            "subject": subject,
            "content": content,
        }
        headers = {
            "Authorization": f"Bearer {self._settings.sendgrid_api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._http.post(
                _SENDGRID_API_URL, json=payload, headers=headers
            )
            if response.status_code in (200, 201, 202):
                log.info("email_sent_success", to_email=to_email, subject=subject)
                return True
            log.error(
                "email_sent_failed",
                to_email=to_email,
                subject=subject,
                status_code=response.status_code,
                response=response.text[:200],
            )
            return False
        except httpx.HTTPError as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def send_otp_email(
        self,
        email: str,
        user_name: Optional[str],
        otp_code: str,
        purpose: str,
        expires_in_minutes: int,
    ) -> bool:
        brand = self._settings.sendgrid_from_name
        template = self._jinja.get_template("otp.html")
        html_body = template.render(
            otp_code=otp_code,
            user_name=user_name,
            intro=_PURPOSE_INTROS.get(purpose, ""),
            expires_in_minutes=expires_in_minutes,
            brand=brand,
            app_url=self._app_url,
        )
        text_body = otp_text_body(otp_code, user_name, purpose, expires_in_minutes, brand)
        return await self._send(
            email, user_name, otp_subject(purpose, brand), html_body, text_body
        )

    async def send_welcome_email(self, email: str, user_name: Optional[str]) -> bool:
        brand = self._settings.sendgrid_from_name
        template = self._jinja.get_template("welcome.html")
        html_body = template.render(user_name=user_name, brand=brand, app_url=self._app_url)
        text_body = (
            f"Welcome to {brand}{f', {user_name}' if user_name else ''}!\n\n"
            f"Your email is verified. Get started: {self._app_url}/dashboard\n\n"
            f"{brand}"
        )
        return await self._send(
            email, user_name, f"Welcome to {brand}", html_body, text_body
        )
