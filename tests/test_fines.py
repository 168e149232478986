from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest
from bookledger.services.fines import calendar_day, compute_fine, days_late

DUE = date(2025, 1, 10)


def _zone_or_skip(name):
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        pytest.skip(f"timezone database has no {name}")


def test_days_late():
    assert days_late(DUE, date(2025, 1, 9)) == 0
    assert days_late(DUE, DUE) == 0
    assert days_late(DUE, date(2025, 1, 17)) == 7


def test_fine_is_daily_rate_times_days_late():
    assert compute_fine(DUE, date(2025, 1, 13), Decimal("0.50")) == Decimal("1.50")
    assert compute_fine(DUE, date(2025, 2, 9), Decimal("0.25")) == Decimal("7.50")


def test_no_fine_when_on_time_or_rate_is_zero():
    assert compute_fine(DUE, DUE, Decimal("0.50")) == Decimal("0.00")
    assert compute_fine(DUE, date(2025, 3, 1), Decimal("0")) == Decimal("0.00")


def test_fine_rounds_to_cents():
    assert compute_fine(DUE, date(2025, 1, 13), Decimal("0.333")) == Decimal("1.00")


def test_calendar_day_defaults_to_utc():
    late_evening = datetime(2025, 1, 10, 23, 30, tzinfo=timezone.utc)
    assert calendar_day(late_evening) == date(2025, 1, 10)
    assert calendar_day(late_evening, "utc") == date(2025, 1, 10)
    # Naive datetimes are read as UTC.
    assert calendar_day(datetime(2025, 1, 11, 0, 30)) == date(2025, 1, 11)


def test_calendar_day_in_library_timezone():
    _zone_or_skip("America/New_York")
    # 03:00 UTC on the 11th is still the evening of the 10th in New York.
    moment = datetime(2025, 1, 11, 3, 0, tzinfo=timezone.utc)
    assert calendar_day(moment, "UTC") == date(2025, 1, 11)
    assert calendar_day(moment, "America/New_York") == date(2025, 1, 10)
