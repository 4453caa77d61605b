"""
Rate limiting configuration using slowapi.

Keys on the real client IP (proxy headers honoured). Per-route tiers:
  • REGISTER       - 5/hour       (account creation)
  • AUTH           - 5/15 minutes (password login, login code)
  • PASSWORD_RESET - 3/hour
  • OTP_SEND       - 3/5 minutes  (anything that emails a code)
  • DEFAULT        - 100/15 minutes (everything else, via SlowAPIMiddleware)

Decorated endpoints must accept a ``request: Request`` argument.
"""

from slowapi import Limiter

from config import RateLimitSettings
from shared.ip_utils import get_client_ip

_settings = RateLimitSettings()

REGISTER = "5/hour"
AUTH = "5/15 minutes"
PASSWORD_RESET = "3/hour"
OTP_SEND = "3/5 minutes"
DEFAULT = "100/15 minutes"

limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[DEFAULT],
    storage_uri=_settings.rate_limit_storage_uri,
    enabled=_settings.rate_limit_enabled,
    strategy="fixed-window",
)
