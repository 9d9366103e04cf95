"""Friday-aligned week scope utilities.

A weekly scope starts every Friday 00:00 UTC and is identified by that
Friday's date, ``YYYY-MM-DD``.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

FRIDAY = 4  # date.weekday()
DAY_MS = 24 * 60 * 60 * 1000


def to_datetime(ts_ms: int) -> datetime:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc)


def get_friday(dt: datetime | date) -> date:
    """Get the Friday on or before dt (UTC)."""
    d = dt.astimezone(timezone.utc).date() if isinstance(dt, datetime) else dt
    return d - timedelta(days=(d.weekday() - FRIDAY) % 7)


def get_week_id(ts_ms: int) -> str:
    """Week id for an epoch-millisecond timestamp, e.g. '2026-10-16'."""
    return get_friday(to_datetime(ts_ms)).isoformat()


def get_previous_week_id(ts_ms: int) -> str:
    """Week id of the scope that ended most recently before ts_ms's scope."""
    return (get_friday(to_datetime(ts_ms)) - timedelta(days=7)).isoformat()


def parse_week_id(week_id: str) -> date:
    """Parse and validate a week id; raises ValueError unless it is a Friday."""
    d = date.fromisoformat(week_id)
    if d.weekday() != FRIDAY:
        raise ValueError(f"week id {week_id} is not a Friday")
    return d


def get_week_boundaries(week_id: str) -> tuple[datetime, datetime]:
    """(Friday 00:00 UTC, next Friday 00:00 UTC) for a week id."""
    friday = parse_week_id(week_id)
    start = datetime.combine(friday, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=7)
