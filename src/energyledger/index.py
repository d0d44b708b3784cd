"""Snapshot of a Dataset as dense lookup maps for report generation."""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date

import structlog

from energyledger.config import HEAT_METER
from energyledger.models import Carrier, Dataset, DateHour, YearMonth

log = structlog.get_logger()

VAT_MULTIPLIER = 1.25


def spot_price_per_kwh(price_per_mwh: float) -> float:
    """Convert a wholesale price per MWh to a VAT-inclusive price per kWh."""
    return price_per_mwh / 1000 * VAT_MULTIPLIER


@dataclass(frozen=True)
class IndexedSnapshot:
    """Read-only view of a Dataset. Rebuild it whenever the Dataset changes."""

    usage_by_hour: dict[Carrier, dict[DateHour, float]]
    spot_price_by_hour: dict[DateHour, float]
    spot_price_by_month: dict[YearMonth, float]
    temperature_by_hour: dict[DateHour, float]
    temperature_by_date: dict[date, float]
    last_date: date | None
    _datapoints: dict[Carrier, dict[date, int]] = field(repr=False)

    def usage(self, carrier: Carrier, key: DateHour) -> float | None:
        return self.usage_by_hour[carrier].get(key)

    def datapoints(self, carrier: Carrier, day: date) -> int:
        """Number of hours on the date with a reading from every meter of the carrier.

        A grid meter only counts for dates between its first and last reading.
        """
        return self._datapoints[carrier].get(day, 0)

    def spot_price(self, key: DateHour) -> float | None:
        return self.spot_price_by_hour.get(key)

    def spot_price_of_month(self, year_month: YearMonth) -> float | None:
        return self.spot_price_by_month.get(year_month)


def build_snapshot(dataset: Dataset, heat_meter: str = HEAT_METER) -> IndexedSnapshot:
    """Index usage, spot prices and temperatures of a Dataset."""
    usage_by_hour: dict[Carrier, dict[DateHour, float]] = {
        Carrier.ELECTRICITY: defaultdict(float),
        Carrier.DISTRICT_HEAT: {},
    }
    grid_meters_by_hour: dict[DateHour, int] = defaultdict(int)
    grid_spans: list[tuple[date, date]] = []
    for meter, series in dataset.power_usage.items():
        if meter == heat_meter:
            heat = usage_by_hour[Carrier.DISTRICT_HEAT]
            for r in series:
                heat[DateHour.of(r)] = r.usage
        else:
            electricity = usage_by_hour[Carrier.ELECTRICITY]
            for r in series:
                key = DateHour.of(r)
                electricity[key] += r.usage
                grid_meters_by_hour[key] += 1
            if series:
                grid_spans.append((series[0].date, series[-1].date))
    usage_by_hour = {carrier: dict(values) for carrier, values in usage_by_hour.items()}

    heat_counts: dict[date, int] = defaultdict(int)
    for key in usage_by_hour[Carrier.DISTRICT_HEAT]:
        heat_counts[key.date] += 1

    # An electricity hour counts only when every grid meter active that day reported it
    electricity_counts: dict[date, int] = defaultdict(int)
    for key, meters in grid_meters_by_hour.items():
        active = sum(1 for first, last in grid_spans if first <= key.date <= last)
        if meters >= active:
            electricity_counts[key.date] += 1

    datapoints = {
        Carrier.ELECTRICITY: dict(electricity_counts),
        Carrier.DISTRICT_HEAT: dict(heat_counts),
    }

    spot_price_by_hour = {DateHour.of(r): spot_price_per_kwh(r.price) for r in dataset.spot_prices}

    by_month: dict[YearMonth, list[float]] = defaultdict(list)
    for key, price in spot_price_by_hour.items():
        by_month[YearMonth.from_date(key.date)].append(price)
    # Mean of the hours reported so far, not weighted by the calendar
    spot_price_by_month = {ym: sum(prices) / len(prices) for ym, prices in by_month.items()}

    temperature_by_hour = {DateHour.of(r): r.temperature for r in dataset.hourly_temperature}
    temperature_by_date = {r.date: r.mean_temperature for r in dataset.daily_temperature}

    last_date = max(
        (series[-1].date for series in dataset.power_usage.values() if series),
        default=None,
    )

    log.info(
        "snapshot_built",
        electricity_hours=len(usage_by_hour[Carrier.ELECTRICITY]),
        heat_hours=len(usage_by_hour[Carrier.DISTRICT_HEAT]),
        spot_price_hours=len(spot_price_by_hour),
        last_date=last_date,
    )

    return IndexedSnapshot(
        usage_by_hour=usage_by_hour,
        spot_price_by_hour=spot_price_by_hour,
        spot_price_by_month=spot_price_by_month,
        temperature_by_hour=temperature_by_hour,
        temperature_by_date=temperature_by_date,
        last_date=last_date,
        _datapoints=datapoints,
    )
