"""Row and section models of the generated report."""

from datetime import date, datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from energyledger.models import TariffBreakdown

RowT = TypeVar("RowT")


class Rows(BaseModel, Generic[RowT]):
    rows: list[RowT] = Field(default_factory=list)


class HourlyRow(BaseModel):
    date: date
    hour: int
    name: str
    electricity: float | None
    heat: float | None
    temperature: float | None
    spot_price: float | None
    # NaN when usage is missing for either carrier
    price: float


class DailyRow(BaseModel):
    date: date
    name: str
    electricity: float | None
    heat: float | None
    temperature: float | None
    price_electricity: float
    price_heat: float
    price_electricity_kwh: float
    price_heat_kwh: float
    price: float
    electricity_datapoints: int
    heat_datapoints: int


class PriceRow(BaseModel):
    """Expected price per kWh for an hour, also for hours without usage yet."""

    date: date
    hour: int
    name: str
    spot_price: float | None
    price_electricity_kwh: float
    price_heat_kwh: float


class EnergyTemperatureRow(BaseModel):
    date: date
    name: str
    power: float
    temperature: float
    index: int


class LinearFit(BaseModel):
    """usage = slope * temperature + y_start"""

    slope: float
    y_start: float
    points: int


class EnergyTemperatureReport(BaseModel):
    """Daily usage against temperature, with one fit per regression period.

    Fits are stored as extra fields named by period, e.g. `linearH22`.
    """

    model_config = ConfigDict(extra="allow")

    rows: list[EnergyTemperatureRow] = Field(default_factory=list)

    def fit(self, period: str) -> LinearFit:
        return (self.model_extra or {})[period]

    def periods(self) -> list[str]:
        return list(self.model_extra or {})


class BucketSummary(BaseModel):
    """Usage and itemized cost for an arbitrary set of dates."""

    name: str
    temperature: float | None
    spot_price: float | None
    electricity: TariffBreakdown
    heat: TariffBreakdown
    electricity_datapoints: int
    heat_datapoints: int
    electricity_cost: float
    heat_cost: float
    cost: float


class MonthlyRow(BaseModel):
    year_month: str
    name: str
    electricity: float
    heat: float
    temperature: float | None
    price: float


class MonthSpotPrice(BaseModel):
    year_month: str
    spot_price: float | None


class SpotPrices(BaseModel):
    current_month: MonthSpotPrice
    previous_month: MonthSpotPrice


class CostSummary(BaseModel):
    current_month: BucketSummary
    previous_month: BucketSummary
    current_year: BucketSummary
    same_month_last_year: BucketSummary


class YearlyToThisDate(BaseModel):
    # MM-DD, inclusive
    until_day_incl: str
    data: list[BucketSummary]


class Tables(BaseModel):
    yearly: list[BucketSummary]
    yearly_to_this_date: YearlyToThisDate
    monthly: list[BucketSummary]
    last_days: list[BucketSummary]


class Report(BaseModel):
    generated_at: datetime
    hourly: Rows[HourlyRow]
    daily: Rows[DailyRow]
    monthly: Rows[MonthlyRow]
    et: EnergyTemperatureReport
    et_heat: EnergyTemperatureReport
    prices: Rows[PriceRow]
    spotprices: SpotPrices
    cost: CostSummary
    table: Tables
