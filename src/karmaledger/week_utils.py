"""Calendar week and weeks-since-join utilities.

All week arithmetic is done in UTC. Weeks run Monday 00:00:00.000 through
Sunday 23:59:59.999 (ISO numbering, Sunday is the last day of the week).
Naive datetimes are assumed to already be UTC, which is how SQLite hands
back ``DateTime(timezone=True)`` columns.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone

WEEK_END_TIME = time(23, 59, 59, 999000)
WEEK_LENGTH = timedelta(days=7)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def get_monday(dt: datetime | date) -> date:
    """Get the Monday of the ISO week containing dt."""
    if isinstance(dt, datetime):
        d = ensure_utc(dt).date()
    else:
        d = dt
    return d - timedelta(days=d.weekday())


def calendar_week_for_date(dt: datetime | date) -> tuple[datetime, datetime]:
    """Get (Monday 00:00:00.000, Sunday 23:59:59.999) UTC for the week containing dt."""
    monday = get_monday(dt)
    sunday = monday + timedelta(days=6)
    start = datetime.combine(monday, time.min, tzinfo=timezone.utc)
    end = datetime.combine(sunday, WEEK_END_TIME, tzinfo=timezone.utc)
    return start, end


def current_calendar_week(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Get boundaries for the calendar week containing now."""
    if now is None:
        now = datetime.now(timezone.utc)
    return calendar_week_for_date(now)


def week_upper_bound(week_start: datetime) -> datetime:
    """Exclusive upper bound for range queries: the next Monday 00:00 UTC.

    Stored timestamps carry microseconds, so filter with ``< week_upper_bound``
    rather than ``<= end``.
    """
    return week_start + WEEK_LENGTH


def weeks_between(joined_at: datetime, moment: datetime) -> int:
    """Personal week number of ``moment`` for a user who joined at ``joined_at``.

    Whole days elapsed, divided by 7 and rounded up, never below week 1.
    """
    elapsed = ensure_utc(moment) - ensure_utc(joined_at)
    days = math.floor(elapsed.total_seconds() / 86400)
    return max(1, math.ceil(days / 7))


def weeks_since_join(joined_at: datetime, now: datetime | None = None) -> int:
    """How many personal weeks have passed since the user joined (>= 1)."""
    if now is None:
        now = datetime.now(timezone.utc)
    return weeks_between(joined_at, now)
