"""Hourly itemized pricing for electricity and district heat."""

import math
from collections.abc import Sequence
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict

from energyledger.dates import days_in_year
from energyledger.index import IndexedSnapshot
from energyledger.models import Carrier, DateHour, TariffBreakdown, YearMonth
from energyledger.tariff import rates
from energyledger.tariff.rates import RateTable


SPOT_PRICE = "Spot price"
FINANCIAL_RESULT = "Financial result"
MARKUP = "Markup"
NETWORK_ENERGY_RATE = "Network energy rate"
CONSUMPTION_LEVY = "Consumption levy"
PRICE_SUPPORT = "Price support"
FIXED_FEE = "Fixed fee"
CAPACITY_CHARGE = "Capacity charge"
NETWORK_FIXED_FEE = "Network fixed fee"
REBATE = "Rebate"
ADMINISTRATIVE_MARKUP = "Administrative markup"
NETWORK_FEE = "Network fee"
UNSUPPORTED = "Unsupported price model"


class PriceSupportMode(str, Enum):
    MONTHLY = "monthly"
    HOURLY = "hourly"


class HeatRebateModel(str, Enum):
    FLAT = "flat"
    TIERED = "tiered"


class TariffRegime(BaseModel):
    """Pricing rules in force from `effective_from` until the next regime."""

    model_config = ConfigDict(frozen=True)

    name: str
    effective_from: date
    price_support: PriceSupportMode = PriceSupportMode.MONTHLY
    network_fixed_fee: bool = False
    heat_rebate: HeatRebateModel = HeatRebateModel.FLAT


ELECTRICITY_REGIMES: tuple[TariffRegime, ...] = (
    TariffRegime(name="electricity 2022", effective_from=date(2022, 1, 1)),
    TariffRegime(
        name="electricity network fixed fee",
        effective_from=date(2023, 1, 1),
        network_fixed_fee=True,
    ),
    TariffRegime(
        name="electricity hourly price support",
        effective_from=date(2023, 9, 1),
        network_fixed_fee=True,
        price_support=PriceSupportMode.HOURLY,
    ),
)

HEAT_REGIMES: tuple[TariffRegime, ...] = (
    TariffRegime(name="heat flat rebate", effective_from=date(2022, 1, 1)),
    TariffRegime(
        name="heat tiered rebate",
        effective_from=date(2022, 10, 1),
        heat_rebate=HeatRebateModel.TIERED,
    ),
    TariffRegime(
        name="heat hourly price support",
        effective_from=date(2023, 9, 1),
        heat_rebate=HeatRebateModel.TIERED,
        price_support=PriceSupportMode.HOURLY,
    ),
)


def select_regime(regimes: Sequence[TariffRegime], day: date) -> TariffRegime | None:
    """Latest regime that has taken effect on `day`, None before the first one."""
    selected = None
    for regime in sorted(regimes, key=lambda r: r.effective_from):
        if regime.effective_from <= day:
            selected = regime
    return selected


def get_price_support(spot_price: float, threshold: float, percent: float) -> float:
    """Support per kWh: the given share of the spot price above the threshold."""
    if percent == 0:
        return 0.0
    if math.isnan(spot_price):
        return math.nan
    return max(0.0, (spot_price - threshold) * percent)


def financial_result_per_kwh(year_month: YearMonth, average_spot_price: float) -> float:
    actual = rates.FINANCIAL_RESULT_PER_KWH.get(year_month)
    if actual is not None:
        return actual * rates.VAT
    return (
        average_spot_price
        * rates.FINANCIAL_RESULT_USAGE_FACTOR
        * rates.FINANCIAL_RESULT_DISCOUNT
    )


def heat_rebate_per_kwh(model: HeatRebateModel, spot_price: float, price_support: float) -> float:
    """Rebate per kWh on the heat price after price support, as a negative amount.

    The flat model gives a fixed share of the price. The tiered model gives a
    growing share for each band the price reaches into.
    """
    price = spot_price - price_support
    if math.isnan(price):
        return math.nan
    if model == HeatRebateModel.FLAT:
        return -price * rates.HEAT_REBATE_FLAT_PERCENT

    rebate = 0.0
    lower = 0.0
    for upper, percent in rates.HEAT_REBATE_BANDS:
        if price > lower:
            rebate += (min(price, upper) - lower) * percent
        lower = upper
    return -rebate


def _hourly_share(amount: float, hours: int) -> float:
    return amount / hours


class TariffEngine:
    """Prices one hour of usage against the snapshot's spot prices."""

    def __init__(
        self,
        snapshot: IndexedSnapshot,
        electricity_regimes: Sequence[TariffRegime] = ELECTRICITY_REGIMES,
        heat_regimes: Sequence[TariffRegime] = HEAT_REGIMES,
    ) -> None:
        self.snapshot = snapshot
        self._regimes = {
            Carrier.ELECTRICITY: tuple(electricity_regimes),
            Carrier.DISTRICT_HEAT: tuple(heat_regimes),
        }

    def regime(self, carrier: Carrier, day: date) -> TariffRegime | None:
        return select_regime(self._regimes[carrier], day)

    def price_hour(
        self, carrier: Carrier, day: date, hour: int, usage_kwh: float
    ) -> TariffBreakdown:
        """Itemized cost of `usage_kwh` consumed during the given hour."""
        regime = self.regime(carrier, day)
        if regime is None:
            return TariffBreakdown(
                usage_kwh=usage_kwh,
                variable={UNSUPPORTED: math.nan},
                unavailable=frozenset({UNSUPPORTED}),
            )

        if carrier == Carrier.ELECTRICITY:
            per_kwh, static, unavailable = self._electricity(regime, day, hour)
        else:
            per_kwh, static, unavailable = self._district_heat(regime, day)

        variable = {
            label: (
                math.nan
                if label in unavailable
                else 0.0 if usage_kwh == 0 else rate * usage_kwh
            )
            for label, rate in per_kwh.items()
        }
        return TariffBreakdown(
            usage_kwh=usage_kwh,
            variable=variable,
            static=static,
            unavailable=frozenset(unavailable),
        )

    def price_support_per_kwh(
        self, regime: TariffRegime, year_month: YearMonth, spot_price: float
    ) -> float:
        """Support for an hour, settled hourly or against the month's average."""
        threshold = rates.PRICE_SUPPORT_THRESHOLD_PER_KWH.rate(year_month)
        if (
            regime.price_support == PriceSupportMode.HOURLY
            and year_month in rates.PRICE_SUPPORT_PERCENT_HOURLY
        ):
            percent = rates.PRICE_SUPPORT_PERCENT_HOURLY.rate(year_month)
            return get_price_support(spot_price, threshold, percent)

        average = self._average_spot_price(year_month)
        percent = rates.PRICE_SUPPORT_PERCENT_MONTHLY.rate(year_month)
        return get_price_support(average, threshold, percent)

    def _average_spot_price(self, year_month: YearMonth) -> float:
        value = self.snapshot.spot_price_of_month(year_month)
        return math.nan if value is None else value

    @staticmethod
    def _lookup(table: RateTable, year_month: YearMonth, label: str, unavailable: set[str]) -> float:
        value = table.get(year_month)
        if value is None:
            unavailable.add(label)
            return math.nan
        return value

    def _electricity(
        self, regime: TariffRegime, day: date, hour: int
    ) -> tuple[dict[str, float], dict[str, float], set[str]]:
        year_month = YearMonth.from_date(day)
        unavailable: set[str] = set()

        spot = self.snapshot.spot_price(DateHour(day, hour))
        spot_price = math.nan if spot is None else spot
        average = self._average_spot_price(year_month)

        per_kwh = {
            SPOT_PRICE: spot_price,
            FINANCIAL_RESULT: financial_result_per_kwh(year_month, average),
            MARKUP: rates.ELECTRICITY_MARKUP_PER_KWH,
            NETWORK_ENERGY_RATE: self._lookup(
                rates.NETWORK_ENERGY_RATE_PER_KWH, year_month, NETWORK_ENERGY_RATE, unavailable
            ),
            CONSUMPTION_LEVY: self._lookup(
                rates.CONSUMPTION_LEVY_PER_KWH, year_month, CONSUMPTION_LEVY, unavailable
            ),
            PRICE_SUPPORT: -self.price_support_per_kwh(regime, year_month, spot_price),
        }

        month_hours = year_month.days * 24
        static = {
            FIXED_FEE: _hourly_share(rates.ELECTRICITY_FIXED_FEE_YEAR, days_in_year(day.year) * 24),
            CAPACITY_CHARGE: _hourly_share(
                self._lookup(rates.CAPACITY_CHARGE_PER_MONTH, year_month, CAPACITY_CHARGE, unavailable),
                month_hours,
            ),
        }
        if regime.network_fixed_fee:
            static[NETWORK_FIXED_FEE] = _hourly_share(rates.NETWORK_FIXED_FEE_MONTH, month_hours)

        return per_kwh, static, unavailable

    def _district_heat(
        self, regime: TariffRegime, day: date
    ) -> tuple[dict[str, float], dict[str, float], set[str]]:
        year_month = YearMonth.from_date(day)
        unavailable: set[str] = set()

        # Heat is settled against the month's average, never the hourly price
        average = self._average_spot_price(year_month)
        support = self.price_support_per_kwh(regime, year_month, average)

        per_kwh = {
            SPOT_PRICE: average,
            PRICE_SUPPORT: -support,
            REBATE: heat_rebate_per_kwh(regime.heat_rebate, average, support),
            ADMINISTRATIVE_MARKUP: rates.HEAT_ADMINISTRATIVE_MARKUP_PER_KWH,
            NETWORK_FEE: rates.HEAT_NETWORK_FEE_PER_KWH,
            CONSUMPTION_LEVY: self._lookup(
                rates.CONSUMPTION_LEVY_PER_KWH, year_month, CONSUMPTION_LEVY, unavailable
            ),
        }
        static = {
            FIXED_FEE: _hourly_share(rates.HEAT_FIXED_FEE_YEAR, days_in_year(day.year) * 24),
        }
        return per_kwh, static, unavailable
