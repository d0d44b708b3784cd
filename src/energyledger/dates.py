"""Calendar helpers shared by the store, tariff engine and reports."""

import calendar
from datetime import date, timedelta


def dates_in_range(first_date: date, last_date: date) -> list[date]:
    """All dates from first_date to last_date, both inclusive."""
    if first_date > last_date:
        raise ValueError(f"last_date {last_date} must not be before first_date {first_date}")

    days = (last_date - first_date).days
    return [first_date + timedelta(days=i) for i in range(days + 1)]


def is_date_in_range(first_date: date, last_date: date, target: date) -> bool:
    return first_date <= target <= last_date


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def year_dates(year: int, until: date | None = None) -> list[date]:
    """Dates of a year, optionally cut off after `until`."""
    last = date(year, 12, 31)
    if until is not None:
        last = min(last, until)
    first = date(year, 1, 1)
    if last < first:
        return []
    return dates_in_range(first, last)


def same_day_in_year(value: date, year: int) -> date:
    """The same month/day in another year, clamping Feb 29 to Feb 28."""
    day = min(value.day, days_in_month(year, value.month))
    return date(year, value.month, day)
