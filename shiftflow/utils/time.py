"""
Time utilities for schedule arithmetic and countdowns.

All timestamps handled by the core are timezone-aware UTC datetimes. The
frequency arithmetic here is the single source for DCA rescheduling so
that next-execution times are recomputed deterministically.
"""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(ts: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive datetimes are assumed to already be in UTC.
    """
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def add_months(anchor: datetime, months: int) -> datetime:
    """
    Add calendar months to a timestamp.

    The day of month is clamped to the last day of the target month, so
    January 31st plus one month is the last day of February.
    """
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return anchor.replace(year=year, month=month, day=min(anchor.day, last_day))


def next_execution_time(frequency: str, anchor: Optional[datetime] = None) -> datetime:
    """
    Compute the next execution time for a recurring frequency.

    Args:
        frequency: One of hourly, daily, weekly, monthly
        anchor: Timestamp to schedule from, defaults to now

    Returns:
        Next execution time as aware UTC datetime

    Raises:
        ValueError: If the frequency is unknown
    """
    base = ensure_utc(anchor) if anchor is not None else utc_now()
    value = getattr(frequency, "value", frequency)

    if value == "hourly":
        return base + timedelta(hours=1)
    if value == "daily":
        return base + timedelta(days=1)
    if value == "weekly":
        return base + timedelta(days=7)
    if value == "monthly":
        return add_months(base, 1)

    raise ValueError(f"Unknown frequency: {frequency}")


def seconds_until(target: datetime, now: Optional[datetime] = None) -> float:
    """Seconds from now until target; negative when target is in the past."""
    if now is None:
        now = utc_now()
    return (ensure_utc(target) - ensure_utc(now)).total_seconds()


def time_elapsed_seconds(start_time: datetime, end_time: Optional[datetime] = None) -> float:
    """
    Calculate elapsed time in seconds between two timestamps.

    Args:
        start_time: Start timestamp
        end_time: End timestamp, defaults to now

    Returns:
        Elapsed time in seconds
    """
    if end_time is None:
        end_time = utc_now()

    return (ensure_utc(end_time) - ensure_utc(start_time)).total_seconds()


def format_countdown(remaining_seconds: float) -> str:
    """Format a remaining duration as '4m 05s' style text, or 'expired'."""
    remaining = int(remaining_seconds)
    if remaining <= 0:
        return "expired"

    minutes, seconds = divmod(remaining, 60)
    if minutes:
        return f"{minutes}m {seconds:02d}s"
    return f"{seconds}s"


def format_timestamp(ts: Optional[datetime]) -> Optional[str]:
    """ISO8601 text for a timestamp, passing None through."""
    if ts is None:
        return None
    return ensure_utc(ts).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO8601 text produced by format_timestamp."""
    if value is None or value == "":
        return None
    return ensure_utc(datetime.fromisoformat(value))
