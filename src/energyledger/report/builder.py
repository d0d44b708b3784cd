"""Hourly, daily, bucketed and trend reports over an indexed snapshot."""

import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta

import structlog

from energyledger.config import (
    DATASET_START,
    HOURLY_REPORT_DAYS,
    LAST_DAYS_TABLE_DAYS,
    PRICE_REPORT_PAST_DAYS,
    TIMEZONE,
    TRENDLINE_TEMPERATURE_BELOW,
)
from energyledger.dates import dates_in_range, same_day_in_year, year_dates
from energyledger.index import IndexedSnapshot
from energyledger.models import Carrier, DateHour, TariffBreakdown, YearMonth, round_two_dec
from energyledger.report.models import (
    BucketSummary,
    CostSummary,
    DailyRow,
    EnergyTemperatureReport,
    EnergyTemperatureRow,
    HourlyRow,
    MonthlyRow,
    MonthSpotPrice,
    PriceRow,
    Report,
    Rows,
    SpotPrices,
    Tables,
    YearlyToThisDate,
)
from energyledger.report.trend import fit_periods
from energyledger.tariff.engine import TariffEngine

log = structlog.get_logger()

HOURS = range(24)

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

# Assumed usage for hours not metered yet. It barely moves the price per kWh.
FALLBACK_USAGE_KWH = {
    Carrier.ELECTRICITY: 50.0,
    Carrier.DISTRICT_HEAT: 80.0,
}


def hour_name(day: date, hour: int) -> str:
    return f"{DAY_NAMES[day.weekday()]} {hour:02d}"


def day_name(day: date) -> str:
    return f"{day.day}.{day.month}"


def _mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def _months(first_date: date, last_date: date) -> list[YearMonth]:
    result = []
    current, end = YearMonth.from_date(first_date), YearMonth.from_date(last_date)
    while current <= end:
        result.append(current)
        current = current.next()
    return result


class ReportBuilder:
    """Builds report sections by pricing every hour through the tariff engine.

    `now` is naive local time (Europe/Oslo) and decides what counts as the
    past. Day totals are cached, so sections sharing dates stay cheap.
    """

    def __init__(
        self,
        snapshot: IndexedSnapshot,
        engine: TariffEngine | None = None,
        now: datetime | None = None,
        temperature_below: float = TRENDLINE_TEMPERATURE_BELOW,
    ) -> None:
        self.snapshot = snapshot
        self.engine = engine or TariffEngine(snapshot)
        self.now = now or datetime.now(TIMEZONE).replace(tzinfo=None)
        self.temperature_below = temperature_below
        self._day_cache: dict[tuple[Carrier, date], TariffBreakdown] = {}

    @property
    def today(self) -> date:
        return self.now.date()

    def price_day(self, carrier: Carrier, day: date) -> TariffBreakdown:
        """Sum of the 24 hourly breakdowns, pricing missing hours as zero usage."""
        key = (carrier, day)
        cached = self._day_cache.get(key)
        if cached is not None:
            return cached

        result = TariffBreakdown.combine(
            self.engine.price_hour(
                carrier, day, hour, self.snapshot.usage(carrier, DateHour(day, hour)) or 0.0
            )
            for hour in HOURS
        )
        self._day_cache[key] = result
        return result

    def _day_usage(self, carrier: Carrier, day: date) -> float | None:
        values = [self.snapshot.usage(carrier, DateHour(day, hour)) for hour in HOURS]
        values = [v for v in values if v is not None]
        if not values:
            return None
        return round_two_dec(sum(values))

    def hourly_report(self, first_date: date, last_date: date) -> list[HourlyRow]:
        """One row per hour that has started before now."""
        rows = []
        for day in dates_in_range(first_date, last_date):
            for hour in HOURS:
                key = DateHour(day, hour)
                if key.to_datetime() >= self.now:
                    break

                electricity = self.snapshot.usage(Carrier.ELECTRICITY, key)
                heat = self.snapshot.usage(Carrier.DISTRICT_HEAT, key)
                if electricity is None or heat is None:
                    price = math.nan
                else:
                    price = round_two_dec(
                        self.engine.price_hour(Carrier.ELECTRICITY, day, hour, electricity).total()
                        + self.engine.price_hour(Carrier.DISTRICT_HEAT, day, hour, heat).total()
                    )

                rows.append(
                    HourlyRow(
                        date=day,
                        hour=hour,
                        name=hour_name(day, hour),
                        electricity=electricity,
                        heat=heat,
                        temperature=self.snapshot.temperature_by_hour.get(key),
                        spot_price=self.snapshot.spot_price(key),
                        price=price,
                    )
                )
        return rows

    def daily_report(self, first_date: date, last_date: date) -> list[DailyRow]:
        rows = []
        for day in dates_in_range(first_date, last_date):
            electricity = self.price_day(Carrier.ELECTRICITY, day)
            heat = self.price_day(Carrier.DISTRICT_HEAT, day)
            price_electricity = electricity.total()
            price_heat = heat.total()

            rows.append(
                DailyRow(
                    date=day,
                    name=day_name(day),
                    electricity=self._day_usage(Carrier.ELECTRICITY, day),
                    heat=self._day_usage(Carrier.DISTRICT_HEAT, day),
                    temperature=self.snapshot.temperature_by_date.get(day),
                    price_electricity=price_electricity,
                    price_heat=price_heat,
                    price_electricity_kwh=electricity.price_per_kwh(),
                    price_heat_kwh=heat.price_per_kwh(),
                    price=round_two_dec(price_electricity + price_heat),
                    electricity_datapoints=self.snapshot.datapoints(Carrier.ELECTRICITY, day),
                    heat_datapoints=self.snapshot.datapoints(Carrier.DISTRICT_HEAT, day),
                )
            )
        return rows

    def price_report(self, first_date: date, last_date: date) -> list[PriceRow]:
        """Price per kWh for every hour, assuming a typical usage where none is known."""
        rows = []
        for day in dates_in_range(first_date, last_date):
            for hour in HOURS:
                key = DateHour(day, hour)
                per_kwh = {}
                for carrier in Carrier:
                    usage = self.snapshot.usage(carrier, key)
                    if usage is None or usage == 0:
                        usage = FALLBACK_USAGE_KWH[carrier]
                    per_kwh[carrier] = (
                        self.engine.price_hour(carrier, day, hour, usage).total() / usage
                    )

                rows.append(
                    PriceRow(
                        date=day,
                        hour=hour,
                        name=hour_name(day, hour),
                        spot_price=self.snapshot.spot_price(key),
                        price_electricity_kwh=per_kwh[Carrier.ELECTRICITY],
                        price_heat_kwh=per_kwh[Carrier.DISTRICT_HEAT],
                    )
                )
        return rows

    def summarize(self, dates: Iterable[date], name: str) -> BucketSummary:
        """Flatten the hourly breakdowns of all dates into one per carrier."""
        dates = list(dates)
        electricity = TariffBreakdown.combine(self.price_day(Carrier.ELECTRICITY, d) for d in dates)
        heat = TariffBreakdown.combine(self.price_day(Carrier.DISTRICT_HEAT, d) for d in dates)

        spot_prices = [
            price
            for d in dates
            for hour in HOURS
            if (price := self.snapshot.spot_price(DateHour(d, hour))) is not None
        ]
        temperatures = [
            t for d in dates if (t := self.snapshot.temperature_by_date.get(d)) is not None
        ]

        electricity_cost = electricity.total()
        heat_cost = heat.total()
        return BucketSummary(
            name=name,
            temperature=_mean(temperatures),
            spot_price=_mean(spot_prices),
            electricity=electricity,
            heat=heat,
            electricity_datapoints=sum(
                self.snapshot.datapoints(Carrier.ELECTRICITY, d) for d in dates
            ),
            heat_datapoints=sum(self.snapshot.datapoints(Carrier.DISTRICT_HEAT, d) for d in dates),
            electricity_cost=electricity_cost,
            heat_cost=heat_cost,
            cost=round_two_dec(electricity_cost + heat_cost),
        )

    def _dates_until_last(self, first_date: date, last_date: date) -> list[date]:
        """Dates of the range that are not after the last known usage date."""
        if self.snapshot.last_date is None:
            return []
        last = min(last_date, self.snapshot.last_date)
        if last < first_date:
            return []
        return dates_in_range(first_date, last)

    def monthly_table(self, first_date: date, last_date: date) -> list[BucketSummary]:
        return [
            self.summarize(self._dates_until_last(ym.first_date(), ym.last_date()), str(ym))
            for ym in _months(first_date, last_date)
        ]

    def yearly_table(self, first_date: date, last_date: date) -> list[BucketSummary]:
        return [
            self.summarize(
                [d for d in year_dates(year, last_date) if d >= first_date], str(year)
            )
            for year in range(first_date.year, last_date.year + 1)
        ]

    def yearly_to_this_date(self, first_date: date, last_date: date) -> YearlyToThisDate:
        """Each year from January 1 up to and including today's month and day."""
        data = []
        for year in range(first_date.year, last_date.year + 1):
            until = min(same_day_in_year(self.today, year), last_date)
            data.append(
                self.summarize([d for d in year_dates(year, until) if d >= first_date], str(year))
            )
        return YearlyToThisDate(until_day_incl=f"{self.today:%m-%d}", data=data)

    def monthly_report(self, first_date: date, last_date: date) -> list[MonthlyRow]:
        rows = []
        for summary, ym in zip(
            self.monthly_table(first_date, last_date), _months(first_date, last_date), strict=True
        ):
            rows.append(
                MonthlyRow(
                    year_month=str(ym),
                    name=f"{MONTH_NAMES[ym.month - 1]} {ym.year}",
                    electricity=round_two_dec(summary.electricity.usage_kwh),
                    heat=round_two_dec(summary.heat.usage_kwh),
                    temperature=summary.temperature,
                    price=summary.cost,
                )
            )
        return rows

    def energy_temperature(
        self,
        first_date: date,
        last_date: date,
        carriers: Sequence[Carrier] = (Carrier.ELECTRICITY, Carrier.DISTRICT_HEAT),
    ) -> EnergyTemperatureReport:
        """Daily usage paired with mean temperature, for fully metered days only."""
        rows: list[EnergyTemperatureRow] = []
        for day in dates_in_range(first_date, last_date):
            temperature = self.snapshot.temperature_by_date.get(day)
            if temperature is None:
                continue
            if any(self.snapshot.datapoints(c, day) != 24 for c in carriers):
                continue

            power = sum(self._day_usage(c, day) or 0.0 for c in carriers)
            rows.append(
                EnergyTemperatureRow(
                    date=day,
                    name=day_name(day),
                    power=round_two_dec(power),
                    temperature=temperature,
                    index=len(rows),
                )
            )

        fits = fit_periods(rows, first_date, last_date, self.temperature_below)
        return EnergyTemperatureReport(rows=rows, **fits)

    def spot_prices(self) -> SpotPrices:
        current = YearMonth.from_date(self.today)
        previous = current.previous()
        return SpotPrices(
            current_month=MonthSpotPrice(
                year_month=str(current),
                spot_price=self.snapshot.spot_price_of_month(current),
            ),
            previous_month=MonthSpotPrice(
                year_month=str(previous),
                spot_price=self.snapshot.spot_price_of_month(previous),
            ),
        )

    def cost_summary(self) -> CostSummary:
        current = YearMonth.from_date(self.today)
        previous = current.previous()
        last_year = YearMonth(current.year - 1, current.month)
        return CostSummary(
            current_month=self.summarize(
                self._dates_until_last(current.first_date(), self.today), str(current)
            ),
            previous_month=self.summarize(
                self._dates_until_last(previous.first_date(), previous.last_date()), str(previous)
            ),
            current_year=self.summarize(
                self._dates_until_last(date(self.today.year, 1, 1), self.today),
                str(self.today.year),
            ),
            same_month_last_year=self.summarize(
                self._dates_until_last(last_year.first_date(), last_year.last_date()),
                str(last_year),
            ),
        )

    def build(self) -> Report:
        """Assemble every report section for the snapshot as of `now`."""
        today = self.today
        last_date = self.snapshot.last_date

        if last_date is None:
            hourly: list[HourlyRow] = []
            daily: list[DailyRow] = []
            monthly: list[MonthlyRow] = []
            et = EnergyTemperatureReport()
            et_heat = EnergyTemperatureReport()
            tables = Tables(
                yearly=[],
                yearly_to_this_date=YearlyToThisDate(until_day_incl=f"{today:%m-%d}", data=[]),
                monthly=[],
                last_days=[],
            )
        else:
            first_date = min(DATASET_START, last_date)
            hourly = self.hourly_report(today - timedelta(days=HOURLY_REPORT_DAYS - 1), today)
            daily = self.daily_report(first_date, last_date)
            monthly = self.monthly_report(first_date, last_date)
            et = self.energy_temperature(first_date, last_date)
            et_heat = self.energy_temperature(first_date, last_date, (Carrier.DISTRICT_HEAT,))
            last_days_first = max(first_date, last_date - timedelta(days=LAST_DAYS_TABLE_DAYS - 1))
            tables = Tables(
                yearly=self.yearly_table(first_date, last_date),
                yearly_to_this_date=self.yearly_to_this_date(first_date, last_date),
                monthly=self.monthly_table(first_date, last_date),
                last_days=[
                    self.summarize([d], d.isoformat())
                    for d in dates_in_range(last_days_first, last_date)
                ],
            )

        if self.snapshot.spot_price_by_hour:
            tomorrow = today + timedelta(days=1)
            has_tomorrow = self.snapshot.spot_price(DateHour(tomorrow, 0)) is not None
            prices = self.price_report(
                today - timedelta(days=PRICE_REPORT_PAST_DAYS), tomorrow if has_tomorrow else today
            )
        else:
            prices = []

        report = Report(
            generated_at=self.now,
            hourly=Rows[HourlyRow](rows=hourly),
            daily=Rows[DailyRow](rows=daily),
            monthly=Rows[MonthlyRow](rows=monthly),
            et=et,
            et_heat=et_heat,
            prices=Rows[PriceRow](rows=prices),
            spotprices=self.spot_prices(),
            cost=self.cost_summary(),
            table=tables,
        )
        log.info(
            "report_built",
            hourly_rows=len(hourly),
            daily_rows=len(daily),
            price_rows=len(prices),
            last_date=last_date,
        )
        return report


def build_report(snapshot: IndexedSnapshot, now: datetime | None = None) -> Report:
    return ReportBuilder(snapshot, now=now).build()
