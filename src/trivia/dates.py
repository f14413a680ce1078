"""Calendar-day helpers for streaks and leaderboard periods.

Streaks and leaderboards work on calendar dates in one configured timezone,
never on elapsed hours: 23:59 and 00:01 the next day are different days.
Dates are exchanged as ``YYYY-MM-DD`` strings.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

DATE_FORMAT = "%Y-%m-%d"


def utc_now() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def local_date(now: datetime, tz_name: str = "UTC") -> date:
    """Calendar date of ``now`` in the given timezone."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name)).date()


def to_date_string(d: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return d.strftime(DATE_FORMAT)


def parse_date_string(value: str) -> date:
    """Parse YYYY-MM-DD. Raises ValueError on anything else."""
    return datetime.strptime(value, DATE_FORMAT).date()


def previous_day(d: date) -> date:
    return d - timedelta(days=1)


def get_week_iso(d: date) -> str:
    """Get ISO week string e.g. '2026-W09'. Uses %G-W%V (ISO year + ISO week)."""
    return d.strftime("%G-W%V")


def get_monday(d: date) -> date:
    """Get the Monday of the ISO week containing d."""
    return d - timedelta(days=d.weekday())


def get_month_key(d: date) -> str:
    """Get month string e.g. '2026-02'."""
    return d.strftime("%Y-%m")


def calculate_percentile(rank: int, total: int) -> float:
    """Calculate percentile from rank and total participants.

    Rank 1 out of 100 → 99.0 (top 1%)
    Rank 50 out of 100 → 50.0 (median)
    Rank 100 out of 100 → 0.0 (bottom)
    """
    if total <= 0 or rank <= 0:
        return 0.0
    return round(100 - (rank / total * 100), 2)
