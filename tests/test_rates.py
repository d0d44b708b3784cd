"""Tests for rate tables."""

import pytest

from energyledger.errors import RateUnavailable
from energyledger.models import YearMonth
from energyledger.tariff import rates
from energyledger.tariff.rates import Fallback, RateTable


@pytest.fixture
def table() -> RateTable:
    return RateTable("test", {"2023-01": 1.5, "2023-02": 2.5})


class TestRateTable:
    def test_lookup(self, table: RateTable) -> None:
        assert table.rate(YearMonth(2023, 2)) == 2.5
        assert YearMonth(2023, 1) in table
        assert len(table) == 2

    def test_unavailable_raises(self, table: RateTable) -> None:
        with pytest.raises(RateUnavailable) as exc_info:
            table.rate(YearMonth(2025, 1))
        assert exc_info.value.table == "test"
        assert table.get(YearMonth(2025, 1)) is None

    def test_zero_fallback(self) -> None:
        table = RateTable("zero", {"2023-01": 0.9}, fallback=Fallback.ZERO)
        assert table.rate(YearMonth(2030, 1)) == 0.0
        assert table.get(YearMonth(2030, 1)) == 0.0

    def test_constant_fallback(self) -> None:
        table = RateTable("constant", {}, fallback=Fallback.CONSTANT, fallback_value=0.42)
        assert table.rate(YearMonth(2030, 1)) == 0.42

    def test_constant_fallback_needs_value(self) -> None:
        with pytest.raises(ValueError):
            RateTable("broken", {}, fallback=Fallback.CONSTANT)

    def test_months_sorted(self) -> None:
        table = RateTable("t", {"2023-02": 1.0, "2022-12": 1.0})
        assert table.months() == [YearMonth(2022, 12), YearMonth(2023, 2)]


class TestPublishedTables:
    def test_price_support_percent_falls_back_to_zero(self) -> None:
        assert rates.PRICE_SUPPORT_PERCENT_MONTHLY.rate(YearMonth(2021, 12)) == 0.0
        assert rates.PRICE_SUPPORT_PERCENT_MONTHLY.rate(YearMonth(2022, 9)) == 0.9

    def test_threshold_has_constant_fallback(self) -> None:
        assert rates.PRICE_SUPPORT_THRESHOLD_PER_KWH.rate(YearMonth(2022, 5)) == pytest.approx(0.875)
        assert rates.PRICE_SUPPORT_THRESHOLD_PER_KWH.rate(YearMonth(2030, 1)) == pytest.approx(
            0.9125
        )

    def test_consumption_levy_is_vat_inclusive(self) -> None:
        assert rates.CONSUMPTION_LEVY_PER_KWH.rate(YearMonth(2022, 4)) == pytest.approx(
            0.1541 * 1.25
        )

    def test_month_ranges_are_contiguous(self) -> None:
        months = rates.NETWORK_ENERGY_RATE_PER_KWH.months()
        assert months[0] == YearMonth(2022, 1)
        assert all(b == a.next() for a, b in zip(months, months[1:]))
