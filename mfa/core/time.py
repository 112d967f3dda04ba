"""Time-related helpers.

All OTP computations take an optional point in time.  Resolving that value
through a single function keeps "now" injectable for deterministic tests.
"""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone
from typing import Union

Instant = Union[datetime, int, float, None]


def utc_now() -> datetime:
    """Return the current UTC time as an aware ``datetime`` instance."""

    return datetime.now(timezone.utc)


def to_isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_isoformat(value: str) -> datetime:
    """Parse an ISO 8601 timestamp, treating naive values as UTC."""

    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def unix_seconds(at: Instant = None) -> int:
    """Return whole Unix seconds for *at* (``None`` means now)."""

    if at is None:
        return int(time.time())
    if isinstance(at, datetime):
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        return math.floor(at.timestamp())
    return math.floor(at)
