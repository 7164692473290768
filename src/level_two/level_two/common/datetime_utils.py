from __future__ import annotations

from datetime import date, datetime
from typing import Any

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("التاريخ غير صالح (YYYY-MM-DD)")


def iso(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def today_iso() -> str:
    return iso(date.today())


def months_ago(value: date, months: int) -> date:
    """Same day `months` earlier, clamped to the end of shorter months."""
    year = value.year
    month = value.month - months
    while month <= 0:
        month += 12
        year -= 1
    day = value.day
    while True:
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def as_iso_date(value: Any) -> str:
    """Normalize DATE values from the driver (date/datetime/str) to YYYY-MM-DD."""
    if isinstance(value, datetime):
        return iso(value.date())
    if isinstance(value, date):
        return iso(value)
    return str(value)[:10]
