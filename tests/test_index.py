"""Tests for the indexed snapshot."""

from datetime import date

import pytest

from energyledger.index import build_snapshot, spot_price_per_kwh
from energyledger.models import (
    Carrier,
    Dataset,
    DateHour,
    HourUsage,
    SpotPriceHour,
    TemperatureDay,
    YearMonth,
)


@pytest.fixture
def dataset() -> Dataset:
    return Dataset(
        spot_prices=[
            SpotPriceHour(date=date(2023, 1, 1), hour=0, price=1000.0),
            SpotPriceHour(date=date(2023, 1, 1), hour=1, price=2000.0),
            SpotPriceHour(date=date(2023, 1, 31), hour=0, price=3000.0),
            SpotPriceHour(date=date(2023, 2, 1), hour=0, price=800.0),
        ],
        daily_temperature=[TemperatureDay(date=date(2023, 1, 1), mean_temperature=-4.0)],
        power_usage={
            "grid-1": [HourUsage(date=date(2023, 1, 1), hour=h, usage=1.0) for h in range(24)],
            "grid-2": [HourUsage(date=date(2023, 1, 1), hour=h, usage=0.5) for h in range(20)],
            "district-heat": [
                HourUsage(date=date(2023, 1, 2), hour=h, usage=3.0) for h in range(24)
            ],
        },
    )


class TestSpotPriceConversion:
    def test_mwh_to_kwh_with_vat(self) -> None:
        assert spot_price_per_kwh(1000.0) == pytest.approx(1.25)
        assert spot_price_per_kwh(-80.0) == pytest.approx(-0.1)


class TestBuildSnapshot:
    def test_spot_prices_per_hour(self, dataset: Dataset) -> None:
        snapshot = build_snapshot(dataset)
        assert snapshot.spot_price(DateHour(date(2023, 1, 1), 1)) == pytest.approx(2.5)
        assert snapshot.spot_price(DateHour(date(2023, 1, 1), 2)) is None

    def test_month_mean_is_unweighted(self, dataset: Dataset) -> None:
        snapshot = build_snapshot(dataset)
        # (1.25 + 2.5 + 3.75) / 3
        assert snapshot.spot_price_of_month(YearMonth(2023, 1)) == pytest.approx(2.5)
        assert snapshot.spot_price_of_month(YearMonth(2023, 2)) == pytest.approx(1.0)
        assert snapshot.spot_price_of_month(YearMonth(2023, 3)) is None

    def test_electricity_sums_all_grid_meters(self, dataset: Dataset) -> None:
        snapshot = build_snapshot(dataset)
        assert snapshot.usage(Carrier.ELECTRICITY, DateHour(date(2023, 1, 1), 0)) == 1.5
        assert snapshot.usage(Carrier.ELECTRICITY, DateHour(date(2023, 1, 1), 23)) == 1.0

    def test_electricity_hour_needs_every_grid_meter(self, dataset: Dataset) -> None:
        snapshot = build_snapshot(dataset)
        # grid-2 is missing hours 20-23
        assert snapshot.datapoints(Carrier.ELECTRICITY, date(2023, 1, 1)) == 20

    def test_grid_meter_only_counts_while_reporting(self) -> None:
        dataset = Dataset(
            power_usage={
                "grid-1": [
                    HourUsage(date=date(2023, 1, d), hour=h, usage=1.0)
                    for d in (1, 2)
                    for h in range(24)
                ],
                "grid-2": [HourUsage(date=date(2023, 1, 2), hour=h, usage=1.0) for h in range(12)],
            }
        )
        snapshot = build_snapshot(dataset)
        assert snapshot.datapoints(Carrier.ELECTRICITY, date(2023, 1, 1)) == 24
        assert snapshot.datapoints(Carrier.ELECTRICITY, date(2023, 1, 2)) == 12

    def test_heat_meter_is_separate(self, dataset: Dataset) -> None:
        snapshot = build_snapshot(dataset)
        assert snapshot.usage(Carrier.DISTRICT_HEAT, DateHour(date(2023, 1, 2), 5)) == 3.0
        assert snapshot.usage(Carrier.DISTRICT_HEAT, DateHour(date(2023, 1, 1), 5)) is None
        assert snapshot.datapoints(Carrier.DISTRICT_HEAT, date(2023, 1, 1)) == 0

    def test_custom_heat_meter_name(self, dataset: Dataset) -> None:
        snapshot = build_snapshot(dataset, heat_meter="grid-2")
        assert snapshot.datapoints(Carrier.DISTRICT_HEAT, date(2023, 1, 1)) == 20

    def test_last_date_and_temperature(self, dataset: Dataset) -> None:
        snapshot = build_snapshot(dataset)
        assert snapshot.last_date == date(2023, 1, 2)
        assert snapshot.temperature_by_date[date(2023, 1, 1)] == -4.0

    def test_empty_dataset(self) -> None:
        snapshot = build_snapshot(Dataset())
        assert snapshot.last_date is None
        assert snapshot.usage(Carrier.ELECTRICITY, DateHour(date(2023, 1, 1), 0)) is None
        assert snapshot.spot_price_by_month == {}
