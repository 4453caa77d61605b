"""
Date/time helpers: framework-agnostic.

MongoDB returns naive datetimes unless the client is created with
``tz_aware=True``; every comparison in the credential core goes through
``ensure_utc`` so naive values are treated as UTC instead of raising.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Timezone-aware current time in UTC. Default clock for the services."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_until(moment: datetime, now: datetime) -> int:
    """Whole minutes from *now* until *moment*, rounded up, never negative."""
    seconds = (ensure_utc(moment) - ensure_utc(now)).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 60)
