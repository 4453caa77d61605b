"""
Client metadata resolution for FastAPI requests.

Activity and OTP audit records store the caller's IP and user agent; both
are resolved here from an explicit ``Request`` so the helpers are testable
without a running app.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

_IP_HEADERS: tuple[str, ...] = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
    "X-Client-IP",
)

_MAX_USER_AGENT_LENGTH = 256


@dataclass(frozen=True)
class ClientInfo:
    ip: str
    user_agent: str


def get_client_ip(request: Request) -> str:
    """Extract the real client IP from a FastAPI ``Request``.

    Proxy headers are checked in priority order (Cloudflare, Akamai,
    X-Forwarded-For first hop, nginx) before falling back to the direct
    connection address.

    Returns:
        The resolved client IP string, or ``""`` if none can be found.
    """
    for header in _IP_HEADERS:
        ip_value: str | None = request.headers.get(header)
        if ip_value:
            client_ip: str = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    return request.client.host if request.client else ""


def get_client_info(request: Request) -> ClientInfo:
    """Return the IP and (truncated) user agent of the caller."""
    user_agent = request.headers.get("User-Agent", "")[:_MAX_USER_AGENT_LENGTH]
    return ClientInfo(ip=get_client_ip(request), user_agent=user_agent)
