"""Incremental, deduplicated time-series store over a Dataset."""

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import date
from typing import TypeVar

import structlog

from energyledger.dates import dates_in_range
from energyledger.errors import MergeContractError
from energyledger.models import (
    Dataset,
    DateHour,
    HourUsage,
    SpotPriceHour,
    TemperatureDay,
    TemperatureHour,
)

log = structlog.get_logger()

HourRecordT = TypeVar("HourRecordT", HourUsage, SpotPriceHour, TemperatureHour)

# Sources deliver all 24 hours of a day together, so the last hour marks a complete day
SENTINEL_HOUR = 23


def _check_unique(records: Sequence[HourRecordT], what: str) -> None:
    counts = Counter(DateHour.of(r) for r in records)
    duplicates = sorted(str(key) for key, count in counts.items() if count > 1)
    if duplicates:
        raise MergeContractError(
            f"Batch for {what} has duplicate date/hour pairs: {', '.join(duplicates[:5])}"
        )


def merge_by_date(
    existing: Sequence[HourRecordT], incoming: Sequence[HourRecordT], what: str
) -> list[HourRecordT]:
    """Replace every date present in `incoming` and return the sorted result.

    A date in the batch replaces the whole stored day, so a batch holding only
    some hours of a date leaves just those hours for that date.
    """
    _check_unique(incoming, what)
    if not incoming:
        return list(existing)

    replaced_dates = {r.date for r in incoming}
    merged = [r for r in existing if r.date not in replaced_dates]
    merged.extend(incoming)
    merged.sort(key=lambda r: (r.date, r.hour))
    return merged


class TimeSeriesStore:
    """Merge operations and completeness queries over a mutable Dataset."""

    def __init__(self, dataset: Dataset | None = None) -> None:
        self.dataset = dataset if dataset is not None else Dataset()

    def merge_usage(self, meter: str, records: Sequence[HourUsage]) -> int:
        """Merge hourly usage for one meter, replacing whole dates."""
        existing = self.dataset.power_usage.get(meter, [])
        merged = merge_by_date(existing, records, f"meter {meter}")
        if records:
            self.dataset.power_usage[meter] = merged
            log.info(
                "usage_merged",
                meter=meter,
                dates=len({r.date for r in records}),
                records=len(records),
                total=len(merged),
            )
        return len(records)

    def merge_spot_prices(self, records: Sequence[SpotPriceHour]) -> int:
        self.dataset.spot_prices = merge_by_date(
            self.dataset.spot_prices, records, "spot prices"
        )
        if records:
            log.info("spot_prices_merged", records=len(records))
        return len(records)

    def merge_hourly_temperature(self, records: Sequence[TemperatureHour]) -> int:
        self.dataset.hourly_temperature = merge_by_date(
            self.dataset.hourly_temperature, records, "hourly temperature"
        )
        if records:
            log.info("hourly_temperature_merged", records=len(records))
        return len(records)

    def merge_daily_temperature(self, records: Sequence[TemperatureDay]) -> int:
        dates = [r.date for r in records]
        if len(dates) != len(set(dates)):
            raise MergeContractError("Batch for daily temperature has duplicate dates")
        if not records:
            return 0

        replaced = set(dates)
        merged = [r for r in self.dataset.daily_temperature if r.date not in replaced]
        merged.extend(records)
        merged.sort(key=lambda r: r.date)
        self.dataset.daily_temperature = merged
        log.info("daily_temperature_merged", records=len(records))
        return len(records)

    def meter_names(self) -> list[str]:
        return sorted(self.dataset.power_usage)

    def last_usage_date(self) -> date | None:
        last_dates = [series[-1].date for series in self.dataset.power_usage.values() if series]
        return max(last_dates, default=None)

    def is_range_complete(
        self,
        meter: str,
        first_date: date,
        last_date: date,
        require_hour: int = SENTINEL_HOUR,
    ) -> bool:
        """True if every date in the range has a record at `require_hour`."""
        stored = {
            r.date for r in self.dataset.power_usage.get(meter, []) if r.hour == require_hour
        }
        return all(d in stored for d in dates_in_range(first_date, last_date))

    def complete_dates(self, meter: str, verified_only: bool = False) -> set[date]:
        """Dates with all 24 hours stored.

        With `verified_only`, readings explicitly marked unverified do not count,
        so days holding preliminary values are reported as incomplete.
        """
        hours: dict[date, int] = defaultdict(int)
        for r in self.dataset.power_usage.get(meter, []):
            if verified_only and r.verified is False:
                continue
            hours[r.date] += 1
        return {d for d, count in hours.items() if count == 24}

    def has_spot_prices(self, day: date) -> bool:
        return any(r.date == day for r in self.dataset.spot_prices)

    def has_hourly_temperature(self, day: date) -> bool:
        return any(
            r.date == day and r.hour == SENTINEL_HOUR for r in self.dataset.hourly_temperature
        )

    def has_daily_temperature(self, dates: Iterable[date]) -> bool:
        stored = {r.date for r in self.dataset.daily_temperature}
        return all(d in stored for d in dates)
