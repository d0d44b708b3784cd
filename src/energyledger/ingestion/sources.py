"""Provider interfaces for usage, spot prices and temperatures."""

from datetime import date
from pathlib import Path
from typing import Protocol, TypeVar

import structlog
from pydantic import TypeAdapter

from energyledger.models import HourUsage, SpotPriceHour, TemperatureDay, TemperatureHour

log = structlog.get_logger()

RecordT = TypeVar("RecordT")

_USAGE = TypeAdapter(list[HourUsage])
_SPOT_PRICES = TypeAdapter(list[SpotPriceHour])
_HOURLY_TEMPERATURE = TypeAdapter(list[TemperatureHour])
_DAILY_TEMPERATURE = TypeAdapter(list[TemperatureDay])


class UsageSource(Protocol):
    def fetch_usage(self, first_date: date, last_date: date) -> list[HourUsage]: ...


class SpotPriceSource(Protocol):
    def fetch_spot_prices(self, day: date) -> list[SpotPriceHour]: ...


class TemperatureSource(Protocol):
    def fetch_hourly(self, day: date) -> list[TemperatureHour]: ...

    def fetch_daily(self, year: int) -> list[TemperatureDay]: ...


class JsonFileSource:
    """Normalized records exported to a JSON array.

    The same file type backs every protocol, so a file of usage records can
    be used as a `UsageSource` and a file of spot prices as a `SpotPriceSource`.
    Records are validated on every read.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self, adapter: TypeAdapter[list[RecordT]]) -> list[RecordT]:
        records = adapter.validate_json(self.path.read_bytes())
        log.info("json_records_read", path=str(self.path), count=len(records))
        return records

    def usage(self) -> list[HourUsage]:
        return self._read(_USAGE)

    def spot_prices(self) -> list[SpotPriceHour]:
        return self._read(_SPOT_PRICES)

    def hourly_temperature(self) -> list[TemperatureHour]:
        return self._read(_HOURLY_TEMPERATURE)

    def daily_temperature(self) -> list[TemperatureDay]:
        return self._read(_DAILY_TEMPERATURE)

    def fetch_usage(self, first_date: date, last_date: date) -> list[HourUsage]:
        return [r for r in self.usage() if first_date <= r.date <= last_date]

    def fetch_spot_prices(self, day: date) -> list[SpotPriceHour]:
        return [r for r in self.spot_prices() if r.date == day]

    def fetch_hourly(self, day: date) -> list[TemperatureHour]:
        return [r for r in self.hourly_temperature() if r.date == day]

    def fetch_daily(self, year: int) -> list[TemperatureDay]:
        return [r for r in self.daily_temperature() if r.date.year == year]


class JsonTemperatureSource:
    """Hourly and daily temperatures kept in separate JSON files. Either may be omitted."""

    def __init__(self, hourly: Path | str | None = None, daily: Path | str | None = None) -> None:
        self.hourly = JsonFileSource(hourly) if hourly is not None else None
        self.daily = JsonFileSource(daily) if daily is not None else None

    def fetch_hourly(self, day: date) -> list[TemperatureHour]:
        return self.hourly.fetch_hourly(day) if self.hourly else []

    def fetch_daily(self, year: int) -> list[TemperatureDay]:
        return self.daily.fetch_daily(year) if self.daily else []
