"""Incremental loading: fetch from providers only what the store is missing."""

from collections import defaultdict
from collections.abc import Callable, Mapping
from datetime import date, datetime, timedelta
from typing import TypeVar

import structlog

from energyledger.config import (
    HEAT_METER,
    LOADER_LOOKBACK_DAYS,
    SPOT_PRICES_TOMORROW_FROM_HOUR,
)
from energyledger.dates import dates_in_range
from energyledger.ingestion.sources import SpotPriceSource, TemperatureSource, UsageSource
from energyledger.store import TimeSeriesStore

log = structlog.get_logger()

T = TypeVar("T")


def handle_failure(fn: Callable[[], T], what: str, attempts: int = 2) -> T | None:
    """Run `fn`, trying again on failure, and give up after `attempts` tries.

    Every failure is logged as a warning. Nothing is raised; None is returned
    once all attempts have failed.
    """
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except Exception as e:
            log.warning("load_failed", step=what, attempt=attempt, error=str(e))

    log.warning("load_gave_up", step=what, attempts=attempts)
    return None


class Loader:
    """Runs the load-if-needed steps against a TimeSeriesStore."""

    def __init__(
        self,
        store: TimeSeriesStore,
        usage_sources: Mapping[str, UsageSource] | None = None,
        spot_prices: SpotPriceSource | None = None,
        temperature: TemperatureSource | None = None,
        heat_meter: str = HEAT_METER,
        attempts: int = 2,
    ) -> None:
        self.store = store
        self.usage_sources = dict(usage_sources or {})
        self.spot_prices = spot_prices
        self.temperature = temperature
        self.heat_meter = heat_meter
        self.attempts = attempts

    def load_spot_prices(self, day: date) -> int:
        if self.spot_prices is None or self.store.has_spot_prices(day):
            return 0
        log.info("loading_spot_prices", date=day)
        return self.store.merge_spot_prices(self.spot_prices.fetch_spot_prices(day))

    def load_hourly_temperature(self, day: date) -> int:
        if self.temperature is None or self.store.has_hourly_temperature(day):
            return 0
        log.info("loading_hourly_temperature", date=day)
        return self.store.merge_hourly_temperature(self.temperature.fetch_hourly(day))

    def load_daily_temperature(self, first_date: date, last_date: date) -> int:
        """Fetch whole years of daily means for years with any missing date."""
        if self.temperature is None:
            return 0

        by_year: dict[int, list[date]] = defaultdict(list)
        for d in dates_in_range(first_date, last_date):
            by_year[d.year].append(d)

        count = 0
        for year, dates in by_year.items():
            if self.store.has_daily_temperature(dates):
                continue
            log.info("loading_daily_temperature", year=year)
            count += self.store.merge_daily_temperature(self.temperature.fetch_daily(year))
        return count

    def usage_is_complete(self, meter: str, first_date: date, last_date: date) -> bool:
        """Heat is complete once hour 23 is stored. Grid electricity needs verified days."""
        if meter == self.heat_meter:
            return self.store.is_range_complete(meter, first_date, last_date)

        complete = self.store.complete_dates(meter, verified_only=True)
        return all(d in complete for d in dates_in_range(first_date, last_date))

    def load_usage(self, meter: str, first_date: date, last_date: date) -> int:
        source = self.usage_sources[meter]
        if self.usage_is_complete(meter, first_date, last_date):
            return 0
        log.info("loading_usage", meter=meter, first_date=first_date, last_date=last_date)
        return self.store.merge_usage(meter, source.fetch_usage(first_date, last_date))

    def _step(self, fn: Callable[[], int], what: str) -> int:
        return handle_failure(fn, what, self.attempts) or 0

    def run_iteration(self, now: datetime) -> int:
        """Load the last few days up to today, and tomorrow's spot prices once published.

        `now` is naive local time. Returns the number of records merged.
        """
        today = now.date()
        first_date = today - timedelta(days=LOADER_LOOKBACK_DAYS)
        count = 0

        for day in dates_in_range(first_date, today):
            count += self._step(lambda d=day: self.load_spot_prices(d), f"spot prices {day}")
            count += self._step(
                lambda d=day: self.load_hourly_temperature(d), f"hourly temperature {day}"
            )

        if now.hour >= SPOT_PRICES_TOMORROW_FROM_HOUR:
            tomorrow = today + timedelta(days=1)
            count += self._step(
                lambda: self.load_spot_prices(tomorrow), f"spot prices {tomorrow}"
            )

        # Daily means exist only for completed days
        yesterday = today - timedelta(days=1)
        count += self._step(
            lambda: self.load_daily_temperature(first_date, yesterday), "daily temperature"
        )

        for meter in self.usage_sources:
            count += self._step(
                lambda m=meter: self.load_usage(m, first_date, today), f"usage {meter}"
            )

        log.info("iteration_complete", first_date=first_date, last_date=today, records=count)
        return count
