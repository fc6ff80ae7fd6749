from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def session_duration_minutes(started_at: str | datetime, ended_at: str | datetime) -> int:
    """Billable minutes, rounded up, never less than one."""
    elapsed = (parse_timestamp(ended_at) - parse_timestamp(started_at)).total_seconds()
    if elapsed < 0:
        raise ValueError("Session cannot end before it started")
    return max(1, math.ceil(elapsed / 60))


def session_cost(hourly_rate: Decimal | float | str | None, duration_minutes: int) -> Decimal:
    if hourly_rate is None:
        return Decimal("0.00")
    rate = Decimal(str(hourly_rate))
    return (rate * duration_minutes / Decimal(60)).quantize(CENT, rounding=ROUND_HALF_UP)


def windows_overlap(
    start: str | datetime,
    end: str | datetime,
    other_start: str | datetime,
    other_end: str | datetime,
) -> bool:
    """Half-open overlap: back-to-back bookings do not collide."""
    return parse_timestamp(start) < parse_timestamp(other_end) and parse_timestamp(other_start) < parse_timestamp(end)
