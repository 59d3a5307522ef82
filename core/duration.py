"""Duration helpers for configuration values and calendar-day arithmetic."""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd])\s*$", re.IGNORECASE)
_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}
_DAY = timedelta(days=1)


def parse_duration(value: str) -> timedelta:
    """Parse compact duration strings like '60s', '15m', '1d'."""
    match = _DURATION_RE.match(str(value or ""))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}. Expected '<int><s|m|h|d>'.")

    amount = int(match.group(1))
    unit = match.group(2).lower()
    return timedelta(seconds=amount * _UNIT_SECONDS[unit])


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC so stored and live timestamps compare."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Number of complete 24h periods from `start` to `end`, floored at 0."""
    elapsed = as_utc(end) - as_utc(start)
    return max(0, math.floor(elapsed / _DAY))
