"""Week period helpers for timesheets.

A timesheet week is seven consecutive days: week_end = week_start + 6.
"""

from datetime import date, timedelta
from typing import Iterable, List

WEEK_SPAN_DAYS = 6


def week_end(start: date) -> date:
    """Last day of the week that begins on ``start``."""
    return start + timedelta(days=WEEK_SPAN_DAYS)


def week_dates(start: date) -> List[date]:
    """All seven dates of the week beginning on ``start``."""
    return [start + timedelta(days=i) for i in range(WEEK_SPAN_DAYS + 1)]


def format_week_period(start: date) -> str:
    """
    Human-readable period, e.g. ``"Jan 06, 2025 - Jan 12, 2025"``.
    """
    return f"{start.strftime('%b %d, %Y')} - {week_end(start).strftime('%b %d, %Y')}"


def validate_week(start: date, end: date) -> None:
    """
    Check that a week spans exactly seven days.

    Raises:
        ValueError: If end is not start + 6 days
    """
    if (end - start).days != WEEK_SPAN_DAYS:
        raise ValueError(
            f"Week must span exactly 7 days: {start.isoformat()} to {end.isoformat()}"
        )


def validate_daily_dates(start: date, dates: Iterable[date]) -> None:
    """
    Check that daily entries are distinct dates inside the week.

    Raises:
        ValueError: On an empty list, duplicates or an out-of-week date
    """
    allowed = set(week_dates(start))
    seen = set()
    for d in dates:
        if d not in allowed:
            raise ValueError(
                f"Date {d.isoformat()} is outside the week starting {start.isoformat()}"
            )
        if d in seen:
            raise ValueError(f"Duplicate entry for {d.isoformat()}")
        seen.add(d)

    if not seen:
        raise ValueError("At least one daily entry is required")
