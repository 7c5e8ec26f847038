from datetime import date, datetime, timezone, timedelta, UTC

import pytest

from portal.utils.dates import (
    clamped_due_date,
    day_bounds,
    due_datetime,
    ensure_utc,
    next_month,
    parse_period,
    period_for,
    period_label,
)


def test_ensure_utc_attaches_tz_to_naive():
    value = ensure_utc(datetime(2025, 3, 1, 12, 0))
    assert value.tzinfo is UTC
    assert value.hour == 12


def test_ensure_utc_converts_offsets():
    eastern = timezone(timedelta(hours=-5))
    value = ensure_utc(datetime(2025, 3, 1, 7, 0, tzinfo=eastern))
    assert value == datetime(2025, 3, 1, 12, 0, tzinfo=UTC)
    assert ensure_utc(None) is None


def test_clamped_due_date_short_months():
    assert clamped_due_date(2025, 2, 31) == date(2025, 2, 28)
    assert clamped_due_date(2024, 2, 31) == date(2024, 2, 29)
    assert clamped_due_date(2025, 4, 31) == date(2025, 4, 30)
    assert clamped_due_date(2025, 1, 15) == date(2025, 1, 15)


def test_next_month_wraps_year():
    assert next_month(2025, 12) == (2026, 1)
    assert next_month(2025, 3) == (2025, 4)


def test_period_helpers():
    assert period_for(date(2025, 3, 9)) == "2025-03"
    assert parse_period("2025-11") == (2025, 11)
    assert period_label("2025-03") == "March 2025"


@pytest.mark.parametrize("bad", ["2025-13", "25-03", "2025/03", "", "2025-3"])
def test_parse_period_rejects_bad_values(bad):
    with pytest.raises(ValueError):
        parse_period(bad)


def test_due_datetime_is_noon_utc():
    value = due_datetime(date(2025, 3, 1))
    assert value == datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def test_day_bounds_half_open():
    start, end = day_bounds(date(2025, 3, 1))
    assert start == datetime(2025, 3, 1, tzinfo=UTC)
    assert end - start == timedelta(days=1)
