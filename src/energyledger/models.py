"""Data models for the energy ledger."""

import math
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, Field

from energyledger.dates import days_in_month


class Carrier(str, Enum):
    """Energy carrier delivered to the building."""

    ELECTRICITY = "electricity"
    DISTRICT_HEAT = "district_heat"


class QualityStatus(str, Enum):
    """Quality check result status."""

    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"


class DateHour(NamedTuple):
    """Index key for one local hour of one date."""

    date: date
    hour: int

    @classmethod
    def of(cls, record: "HourUsage | SpotPriceHour | TemperatureHour") -> "DateHour":
        return cls(record.date, record.hour)

    def to_datetime(self) -> datetime:
        return datetime(self.date.year, self.date.month, self.date.day) + timedelta(hours=self.hour)

    def __str__(self) -> str:
        return f"{self.date.isoformat()}-{self.hour}"


class YearMonth(NamedTuple):
    """Index key for a calendar month."""

    year: int
    month: int

    @classmethod
    def from_date(cls, value: date) -> "YearMonth":
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, value: str) -> "YearMonth":
        """Parse a "YYYY-MM" key."""
        year, month = value.split("-")
        result = cls(int(year), int(month))
        if not 1 <= result.month <= 12:
            raise ValueError(f"Invalid month in {value!r}")
        return result

    @property
    def days(self) -> int:
        return days_in_month(self.year, self.month)

    def first_date(self) -> date:
        return date(self.year, self.month, 1)

    def last_date(self) -> date:
        return date(self.year, self.month, self.days)

    def previous(self) -> "YearMonth":
        if self.month == 1:
            return YearMonth(self.year - 1, 12)
        return YearMonth(self.year, self.month - 1)

    def next(self) -> "YearMonth":
        if self.month == 12:
            return YearMonth(self.year + 1, 1)
        return YearMonth(self.year, self.month + 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class HourUsage(BaseModel):
    """Metered consumption for one hour."""

    date: date
    hour: int = Field(ge=0, le=23)
    usage: float = Field(ge=0)
    # None when the source has no notion of verified readings
    verified: bool | None = None


class SpotPriceHour(BaseModel):
    """Wholesale spot price for one hour, in currency per MWh excluding VAT."""

    date: date
    hour: int = Field(ge=0, le=23)
    price: float


class TemperatureHour(BaseModel):
    """Observed outdoor temperature for one hour."""

    date: date
    hour: int = Field(ge=0, le=23)
    temperature: float = Field(ge=-60, le=60)


class TemperatureDay(BaseModel):
    """Daily mean outdoor temperature."""

    date: date
    mean_temperature: float = Field(ge=-60, le=60)


class Dataset(BaseModel):
    """Everything that is persisted between runs."""

    spot_prices: list[SpotPriceHour] = Field(default_factory=list)
    hourly_temperature: list[TemperatureHour] = Field(default_factory=list)
    daily_temperature: list[TemperatureDay] = Field(default_factory=list)
    power_usage: dict[str, list[HourUsage]] = Field(default_factory=dict)


def round_two_dec(value: float) -> float:
    """Round half up to two decimals, keeping NaN."""
    if math.isnan(value):
        return value
    return math.floor(value * 100 + 0.5) / 100


def _nan_as_zero(value: float | None) -> float:
    if value is None or math.isnan(value):
        return 0.0
    return value


def _add_components(
    one: dict[str, float], two: dict[str, float], unavailable: frozenset[str]
) -> dict[str, float]:
    result: dict[str, float] = {}
    for key in [*one, *(k for k in two if k not in one)]:
        if key in unavailable:
            result[key] = math.nan
        else:
            result[key] = _nan_as_zero(one.get(key)) + _nan_as_zero(two.get(key))
    return result


class TariffBreakdown(BaseModel):
    """Itemized cost of some usage.

    `variable` holds usage-proportional amounts and `static` holds prorated
    fixed charges, both keyed by label. Labels in `unavailable` are NaN
    because no rate exists for them and stay NaN when breakdowns are added.
    """

    usage_kwh: float = 0.0
    variable: dict[str, float] = Field(default_factory=dict)
    static: dict[str, float] = Field(default_factory=dict)
    unavailable: frozenset[str] = frozenset()

    def __add__(self, other: "TariffBreakdown") -> "TariffBreakdown":
        unavailable = self.unavailable | other.unavailable
        return TariffBreakdown(
            usage_kwh=self.usage_kwh + other.usage_kwh,
            variable=_add_components(self.variable, other.variable, unavailable),
            static=_add_components(self.static, other.static, unavailable),
            unavailable=unavailable,
        )

    @classmethod
    def combine(cls, items: Iterable["TariffBreakdown"]) -> "TariffBreakdown":
        result = cls()
        for item in items:
            result = result + item
        return result

    def variable_total(self) -> float:
        return sum(self.variable.values())

    def static_total(self) -> float:
        return sum(self.static.values())

    def total(self) -> float:
        """Sum of all components, NaN when any component is NaN."""
        return round_two_dec(self.variable_total() + self.static_total())

    def component(self, label: str) -> float:
        """Amount for a label from either side, 0 when absent."""
        if label in self.variable:
            return self.variable[label]
        return self.static.get(label, 0.0)

    def price_per_kwh(self) -> float:
        if self.usage_kwh == 0:
            return math.nan
        return self.total() / self.usage_kwh


class QualityCheckResult(BaseModel):
    """Result of a data quality check."""

    check_name: str
    status: QualityStatus
    metric_value: float | None = None
    threshold: float | None = None
    message: str
    checked_at: datetime = Field(default_factory=datetime.now)
