"""Calendar helpers: day sequences and the fixed weekday/weekend coverage windows."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone

from .errors import InvalidRange
from .models import WEEKDAY, WEEKEND

UTC = timezone.utc

# kind -> (start clock time, end clock time on the following day)
SHIFT_WINDOWS: dict[str, tuple[time, time]] = {
    WEEKDAY: (time(16, 0), time(9, 0)),
    WEEKEND: (time(8, 0), time(8, 0)),
}


def parse_iso_date(value: str | date) -> date:
    """Parse YYYY-MM-DD into a date. Dates pass through unchanged."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid ISO date: {value!r}") from exc


def iter_days(start: date, end: date) -> list[date]:
    """Every calendar day from start to end, both inclusive, ascending."""
    if start > end:
        raise InvalidRange(f"start date {start.isoformat()} is after end date {end.isoformat()}")
    span = (end - start).days
    return [start + timedelta(days=offset) for offset in range(span + 1)]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    if month < 1 or month > 12:
        raise ValueError(f"month must be within 1..12, got {month}")
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def shift_kind(day: date) -> str:
    return WEEKEND if day.weekday() >= 5 else WEEKDAY


def shift_window(day: date) -> tuple[datetime, datetime]:
    """Start and end of the coverage window for one day (end is always the next day)."""
    start_clock, end_clock = SHIFT_WINDOWS[shift_kind(day)]
    start = datetime.combine(day, start_clock)
    end = datetime.combine(day + timedelta(days=1), end_clock)
    return start, end


def shift_hours(start: datetime, end: datetime) -> float:
    """Duration in decimal hours."""
    return (end - start).total_seconds() / 3600.0


def now_utc_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
