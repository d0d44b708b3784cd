"""Least-squares trend of daily usage against outdoor temperature."""

import math
from collections.abc import Sequence
from datetime import date

from energyledger.report.models import EnergyTemperatureRow, LinearFit

# The first season runs from the dataset start until summer 2022
FIRST_PERIOD = ("linearH21V22", date(2021, 7, 1), date(2022, 6, 30))
ALL_PERIOD = "linearAll"


def linear_fit(xs: Sequence[float], ys: Sequence[float]) -> LinearFit:
    """Ordinary least squares fit of ys against xs.

    Returns NaN slope and intercept with fewer than two points or when all
    xs are equal.
    """
    n = len(xs)
    if n < 2:
        return LinearFit(slope=math.nan, y_start=math.nan, points=n)

    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xx = sum(x * x for x in xs)
    sum_xy = sum(x * y for x, y in zip(xs, ys, strict=True))

    denominator = n * sum_xx - sum_x**2
    if denominator == 0:
        return LinearFit(slope=math.nan, y_start=math.nan, points=n)

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    y_start = (sum_y - slope * sum_x) / n
    return LinearFit(slope=slope, y_start=y_start, points=n)


def _half_year(start: date) -> tuple[str, date, date]:
    # H = autumn half (Jul-Dec), V = spring half (Jan-Jun)
    yy = start.year % 100
    if start.month >= 7:
        return f"linearH{yy:02d}", start, date(start.year, 12, 31)
    return f"linearV{yy:02d}", start, date(start.year, 6, 30)


def regression_periods(first_date: date, last_date: date) -> list[tuple[str, date, date]]:
    """Named calendar periods overlapping the range, each fitted separately."""
    periods = [FIRST_PERIOD]
    start = date(2022, 7, 1)
    while start <= last_date:
        periods.append(_half_year(start))
        start = date(start.year + 1, 1, 1) if start.month >= 7 else date(start.year, 7, 1)

    return [p for p in periods if p[1] <= last_date and p[2] >= first_date]


def fit_periods(
    rows: Sequence[EnergyTemperatureRow],
    first_date: date,
    last_date: date,
    temperature_below: float,
) -> dict[str, LinearFit]:
    """One fit per regression period plus one over the whole range.

    Only days colder than `temperature_below` are used, where usage is
    dominated by heating.
    """
    cold = [r for r in rows if r.temperature < temperature_below]

    fits = {}
    for name, start, end in regression_periods(first_date, last_date):
        selected = [r for r in cold if start <= r.date <= end]
        fits[name] = linear_fit([r.temperature for r in selected], [r.power for r in selected])

    fits[ALL_PERIOD] = linear_fit([r.temperature for r in cold], [r.power for r in cold])
    return fits
