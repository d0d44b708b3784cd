"""Calendar-keyed rate tables and the tariff constants behind them.

All amounts are NOK and include 25 % VAT unless the name says otherwise.
Values marked "assumption" or "guess" are estimates for months without a
published tariff or an invoice yet; replace them when the real numbers are known.
"""

from collections.abc import Mapping
from enum import Enum

from energyledger.errors import RateUnavailable
from energyledger.models import YearMonth

VAT = 1.25


class Fallback(str, Enum):
    """What a rate table returns for a month it has no entry for."""

    CONSTANT = "constant"
    ZERO = "zero"
    UNAVAILABLE = "unavailable"


class RateSource(str, Enum):
    INVOICE = "invoice"
    PUBLISHED = "published"
    ASSUMPTION = "assumption"


class RateTable:
    """Month -> rate lookup with a fallback policy fixed at construction."""

    def __init__(
        self,
        name: str,
        rates: Mapping[str, float],
        fallback: Fallback = Fallback.UNAVAILABLE,
        fallback_value: float | None = None,
        source: RateSource = RateSource.PUBLISHED,
    ) -> None:
        if fallback == Fallback.CONSTANT and fallback_value is None:
            raise ValueError(f"Rate table {name} needs a fallback_value")
        self.name = name
        self.fallback = fallback
        self.fallback_value = fallback_value
        self.source = source
        self._rates = {YearMonth.parse(key): value for key, value in rates.items()}

    def __contains__(self, year_month: YearMonth) -> bool:
        return year_month in self._rates

    def __len__(self) -> int:
        return len(self._rates)

    def rate(self, year_month: YearMonth) -> float:
        """Rate for the month, applying the fallback policy on a miss.

        Raises RateUnavailable when the month is missing and the policy is UNAVAILABLE.
        """
        value = self._rates.get(year_month)
        if value is not None:
            return value
        if self.fallback == Fallback.CONSTANT and self.fallback_value is not None:
            return self.fallback_value
        if self.fallback == Fallback.ZERO:
            return 0.0
        raise RateUnavailable(self.name, year_month)

    def get(self, year_month: YearMonth) -> float | None:
        """Rate for the month, or None when the policy gives no value."""
        try:
            return self.rate(year_month)
        except RateUnavailable:
            return None

    def months(self) -> list[YearMonth]:
        return sorted(self._rates)


def _months(first: str, last: str, value: float) -> dict[str, float]:
    """Same rate for every month from first to last inclusive."""
    result = {}
    current, end = YearMonth.parse(first), YearMonth.parse(last)
    while current <= end:
        result[str(current)] = value
        current = current.next()
    return result


ELECTRICITY_FIXED_FEE_YEAR = 600 * VAT
ELECTRICITY_MARKUP_PER_KWH = 0.02 * VAT
NETWORK_FIXED_FEE_MONTH = 340 * VAT
HEAT_FIXED_FEE_YEAR = 3000 * VAT

# https://www.celsio.no/fjernvarme-og-kjoling/
HEAT_ADMINISTRATIVE_MARKUP_PER_KWH = 0.035 * VAT
HEAT_NETWORK_FEE_PER_KWH = 0.2315 * VAT
HEAT_REBATE_FLAT_PERCENT = 0.05

# Tiered rebate bands, by spot price after price support
HEAT_REBATE_BANDS: list[tuple[float, float]] = [
    (0.9 * VAT, 0.05),
    (2.5 * VAT, 0.30),
    (float("inf"), 0.60),
]

# Spot price multiplier and discount used when the month has no invoice yet:
# 5 % more usage than spot and 10 % discount.
FINANCIAL_RESULT_USAGE_FACTOR = 1.05
FINANCIAL_RESULT_DISCOUNT = -0.1

# Excluding VAT, from invoices
FINANCIAL_RESULT_PER_KWH = RateTable(
    "financial result",
    {
        "2022-01": -0.2187,
        "2022-02": -0.1847,
        "2022-03": -0.5855,
        "2022-04": -0.3521,
        "2022-05": -0.3289,
        "2022-06": -0.2549,
        "2022-07": -0.2177,
        "2022-08": -0.7912,
    },
    source=RateSource.INVOICE,
)

# https://www.elvia.no/nettleie/alt-om-nettleiepriser/nettleiepriser-og-effekttariff-for-bedrifter-med-arsforbruk-over-100000-kwh/
NETWORK_ENERGY_RATE_PER_KWH = RateTable(
    "network energy rate",
    {
        "2022-01": 0.07 * VAT,
        "2022-02": 0.07 * VAT,
        "2022-03": 0.07 * VAT,
        "2022-04": 0.039 * VAT,
        **_months("2022-05", "2022-10", 0.06 * VAT),
        **_months("2022-11", "2023-04", 0.085 * VAT),  # 2023: assumption
        **_months("2023-05", "2023-10", 0.06 * VAT),  # assumption
        **_months("2023-11", "2024-04", 0.085 * VAT),  # assumption
        **_months("2024-05", "2024-10", 0.06 * VAT),  # assumption
        **_months("2024-11", "2024-12", 0.085 * VAT),  # assumption
    },
)

# https://www.skatteetaten.no/bedrift-og-organisasjon/avgifter/saravgifter/om/elektrisk-kraft/
CONSUMPTION_LEVY_PER_KWH = RateTable(
    "consumption levy",
    {
        **_months("2022-01", "2022-03", 0.0891 * VAT),
        **_months("2022-04", "2022-12", 0.1541 * VAT),
        **_months("2023-01", "2023-12", 0.1541 * VAT),  # assumption
        **_months("2024-01", "2024-12", 0.0951 * VAT),
    },
)

# Max hourly demand times the monthly capacity rate
CAPACITY_CHARGE_PER_MONTH = RateTable(
    "capacity charge",
    {
        "2022-01": 122 * 84 * VAT,
        "2022-02": 141.6 * 84 * VAT,
        "2022-03": 120.2 * 84 * VAT,
        "2022-04": 106.8 * 35 * VAT,
        "2022-05": 104.2 * 40 * VAT,
        "2022-06": 102.4 * 40 * VAT,
        "2022-07": 96.2 * 40 * VAT,
        "2022-08": 112.8 * 40 * VAT,
        # Guesses from here on
        "2022-09": 100 * 40 * VAT,
        "2022-10": 110 * 40 * VAT,
        "2022-11": 130 * 90 * VAT,
        "2022-12": 130 * 90 * VAT,
        "2023-01": 122 * 90 * VAT,
        "2023-02": 141.6 * 90 * VAT,
        "2023-03": 120.2 * 90 * VAT,
        "2023-04": 106.8 * 90 * VAT,
        "2023-05": 104.2 * 40 * VAT,
        "2023-06": 102.4 * 40 * VAT,
        "2023-07": 96.2 * 40 * VAT,
        "2023-08": 112.8 * 40 * VAT,
        "2023-09": 100 * 40 * VAT,
        "2023-10": 110 * 40 * VAT,
        "2023-11": 130 * 90 * VAT,
        "2023-12": 130 * 90 * VAT,
        "2024-01": 122 * 90 * VAT,
        "2024-02": 141.6 * 90 * VAT,
        "2024-03": 120.2 * 90 * VAT,
        "2024-04": 106.8 * 90 * VAT,
        "2024-05": 104.2 * 40 * VAT,
        "2024-06": 102.4 * 40 * VAT,
        "2024-07": 96.2 * 40 * VAT,
        "2024-08": 112.8 * 40 * VAT,
        "2024-09": 100 * 40 * VAT,
        "2024-10": 110 * 40 * VAT,
        "2024-11": 130 * 90 * VAT,
        "2024-12": 130 * 90 * VAT,
    },
    source=RateSource.ASSUMPTION,
)

# https://www.regjeringen.no/no/aktuelt/vil-forlenge-stromstotten-til-husholdninger-ut-2023/id2930621/
PRICE_SUPPORT_PERCENT_MONTHLY = RateTable(
    "price support percent",
    {
        **_months("2022-01", "2022-08", 0.8),
        **_months("2022-09", "2023-03", 0.9),
        **_months("2023-04", "2023-09", 0.8),
        **_months("2023-10", "2023-12", 0.9),
    },
    fallback=Fallback.ZERO,
)

# Months where support is settled against each hour's spot price
PRICE_SUPPORT_PERCENT_HOURLY = RateTable(
    "hourly price support percent",
    {
        **_months("2023-09", "2024-12", 0.9),
    },
)

PRICE_SUPPORT_THRESHOLD_PER_KWH = RateTable(
    "price support threshold",
    {
        **_months("2022-01", "2023-12", 0.70 * VAT),
        **_months("2024-01", "2024-12", 0.73 * VAT),
    },
    fallback=Fallback.CONSTANT,
    fallback_value=0.73 * VAT,
)
