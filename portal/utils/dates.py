"""Calendar helpers for billing periods and UTC-normalized timestamps."""

import calendar
import re
from datetime import date, datetime, time, timedelta, UTC
from typing import Optional, Tuple

PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Due dates are stored at noon UTC so that the calendar day is stable across
# North American timezones.
DUE_TIME = time(12, 0, tzinfo=UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def today_utc() -> date:
    return datetime.now(UTC).date()


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def next_month(year: int, month: int) -> Tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def clamped_due_date(year: int, month: int, due_day: int) -> date:
    """Due date for a month, clamping e.g. day 31 to the last day of short months."""
    return date(year, month, min(max(due_day, 1), days_in_month(year, month)))


def due_datetime(day: date) -> datetime:
    return datetime.combine(day, DUE_TIME)


def period_for(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def parse_period(period: str) -> Tuple[int, int]:
    if not PERIOD_RE.match(period or ""):
        raise ValueError(f"Period must be in YYYY-MM format: {period!r}")
    year, month = period.split("-")
    return int(year), int(month)


def period_label(period: str) -> str:
    """'2025-03' -> 'March 2025'."""
    year, month = parse_period(period)
    return f"{calendar.month_name[month]} {year}"


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open UTC range [start, end) covering a calendar day."""
    start = datetime.combine(day, time(0, 0, tzinfo=UTC))
    return start, start + timedelta(days=1)
