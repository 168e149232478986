from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

CENTS = Decimal("0.01")


def calendar_day(moment: datetime, tz_name: str = "UTC") -> date:
    """The date ``moment`` falls on in the library's timezone."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    tz = timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)
    return moment.astimezone(tz).date()


def days_late(due_date: date, returned_on: date) -> int:
    if returned_on <= due_date:
        return 0
    return (returned_on - due_date).days


def compute_fine(due_date: date, returned_on: date, per_day: Decimal) -> Decimal:
    """Late fee for a return: whole days past the due date times the daily rate."""
    late = days_late(due_date, returned_on)
    if late <= 0 or per_day <= 0:
        return Decimal("0.00")
    return (Decimal(per_day) * late).quantize(CENTS, rounding=ROUND_HALF_UP)
