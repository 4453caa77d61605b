"""
Structured logging for the SpeedForce API.

Provides:
- get_logger(): Get a configured logger instance
- hash_ip(): Hash IP addresses for privacy
- setup_logging(): one-time structlog + stdlib configuration, called from
  create_app() with the LoggingSettings of the running app

Production: JSON formatting for easy parsing
Development: Pretty console formatting with colors
"""

from __future__ import annotations

import hashlib
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor

# Sensitive fields to redact from logs
REDACTED_FIELDS = {
    "password",
    "password_hash",
    "credential_hash",
    "token",
    "otp",
    "code",
    "api_key",
    "authorization",
    "cookie",
    "refresh_token",
    "access_token",
    "secret",
    "key",
}

_SENSITIVE_FRAGMENTS = ("password", "token", "key", "secret")
_PASSTHROUGH_KEYS = ("level", "event", "timestamp", "logger", "error_code")

_hash_ips = False


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured structlog BoundLogger instance

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("login_otp_sent", account_id="123")
    """
    return structlog.get_logger(name)


def hash_ip(ip_address: Optional[str]) -> Optional[str]:
    """
    Hash IP address for privacy in production.

    In production: Returns SHA-256 hash (first 16 chars)
    In development: Returns the original IP for easier debugging
    """
    if ip_address is None:
        return None
    if _hash_ips and ip_address:
        return hashlib.sha256(ip_address.encode()).hexdigest()[:16]
    return ip_address


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format timestamp to event dict."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _PASSTHROUGH_KEYS:
            continue
        lowered = key.lower()
        if lowered in REDACTED_FIELDS or any(
            fragment in lowered for fragment in _SENSITIVE_FRAGMENTS
        ):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(log_format: str) -> None:
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            pad_event=15,
            sort_keys=False,
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging(log_level: str) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def setup_logging(
    log_level: str = "INFO", log_format: str = "console", production: bool = False
) -> None:
    """
    Initialize logging system for the application.

    Should be called once, early in application startup (create_app).
    """
    global _hash_ips
    _hash_ips = production

    configure_stdlib_logging(log_level)
    configure_structlog(log_format)

    get_logger(__name__).info(
        "logging_initialized",
        log_level=log_level,
        log_format=log_format,
        production=production,
    )


__all__ = [
    "get_logger",
    "hash_ip",
    "setup_logging",
    "configure_structlog",
    "redact_sensitive_fields",
]
