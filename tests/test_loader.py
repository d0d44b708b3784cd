"""Tests for incremental loading from sources."""

import json
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from energyledger.ingestion import JsonFileSource, JsonTemperatureSource, Loader, handle_failure
from energyledger.models import HourUsage, SpotPriceHour, TemperatureDay, TemperatureHour
from energyledger.store import TimeSeriesStore

NOW = datetime(2023, 5, 5, 9, 0)


class FakeSpotPrices:
    def __init__(self) -> None:
        self.calls: list[date] = []

    def fetch_spot_prices(self, day: date) -> list[SpotPriceHour]:
        self.calls.append(day)
        return [SpotPriceHour(date=day, hour=h, price=500.0) for h in range(24)]


class FakeTemperature:
    def __init__(self) -> None:
        self.hourly_calls: list[date] = []
        self.daily_calls: list[int] = []

    def fetch_hourly(self, day: date) -> list[TemperatureHour]:
        self.hourly_calls.append(day)
        return [TemperatureHour(date=day, hour=h, temperature=4.0) for h in range(24)]

    def fetch_daily(self, year: int) -> list[TemperatureDay]:
        self.daily_calls.append(year)
        first = date(year, 1, 1)
        return [TemperatureDay(date=first + timedelta(days=i), mean_temperature=2.0) for i in range(365)]


class EndedDaysTemperature(FakeTemperature):
    """Daily means only for days that have ended."""

    def fetch_daily(self, year: int) -> list[TemperatureDay]:
        return [r for r in super().fetch_daily(year) if r.date < NOW.date()]


class FakeUsage:
    def __init__(self, verified: bool | None = None) -> None:
        self.verified = verified
        self.calls: list[tuple[date, date]] = []

    def fetch_usage(self, first_date: date, last_date: date) -> list[HourUsage]:
        self.calls.append((first_date, last_date))
        days = (last_date - first_date).days + 1
        return [
            HourUsage(date=first_date + timedelta(days=i), hour=h, usage=1.0, verified=self.verified)
            for i in range(days)
            for h in range(24)
        ]


class FailingSource:
    def __init__(self) -> None:
        self.calls = 0

    def fetch_spot_prices(self, day: date) -> list[SpotPriceHour]:
        self.calls += 1
        raise ConnectionError("provider down")


class TestHandleFailure:
    def test_returns_result(self) -> None:
        assert handle_failure(lambda: 3, "step") == 3

    def test_retries_once(self) -> None:
        calls = []

        def flaky() -> int:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first try fails")
            return 7

        assert handle_failure(flaky, "step") == 7
        assert len(calls) == 2

    def test_gives_up_after_attempts(self) -> None:
        calls = []

        def broken() -> int:
            calls.append(1)
            raise RuntimeError("always fails")

        assert handle_failure(broken, "step") is None
        assert len(calls) == 2


class TestLoader:
    def test_run_iteration_loads_window(self) -> None:
        store = TimeSeriesStore()
        spot, temperature = FakeSpotPrices(), FakeTemperature()
        usage = FakeUsage()
        loader = Loader(
            store,
            usage_sources={"district-heat": usage},
            spot_prices=spot,
            temperature=temperature,
        )

        loader.run_iteration(NOW)

        assert spot.calls == [date(2023, 5, d) for d in range(1, 6)]
        assert temperature.hourly_calls == [date(2023, 5, d) for d in range(1, 6)]
        assert temperature.daily_calls == [2023]
        assert usage.calls == [(date(2023, 5, 1), date(2023, 5, 5))]
        assert store.last_usage_date() == date(2023, 5, 5)

    def test_second_run_skips_stored_data(self) -> None:
        store = TimeSeriesStore()
        spot, temperature = FakeSpotPrices(), FakeTemperature()
        usage = FakeUsage()
        loader = Loader(
            store,
            usage_sources={"district-heat": usage},
            spot_prices=spot,
            temperature=temperature,
        )

        loader.run_iteration(NOW)
        count = loader.run_iteration(NOW)

        assert count == 0
        assert len(spot.calls) == 5
        assert len(usage.calls) == 1

    def test_daily_temperature_until_yesterday_is_complete(self) -> None:
        temperature = EndedDaysTemperature()
        loader = Loader(TimeSeriesStore(), temperature=temperature)

        for _ in range(3):
            loader.run_iteration(NOW)

        assert temperature.daily_calls == [2023]

    def test_tomorrow_spot_prices_in_afternoon(self) -> None:
        spot = FakeSpotPrices()
        loader = Loader(TimeSeriesStore(), spot_prices=spot)

        loader.run_iteration(NOW.replace(hour=14))

        assert spot.calls[-1] == date(2023, 5, 6)

    def test_unverified_grid_usage_is_fetched_again(self) -> None:
        usage = FakeUsage(verified=False)
        loader = Loader(TimeSeriesStore(), usage_sources={"grid-1": usage})

        loader.run_iteration(NOW)
        loader.run_iteration(NOW)

        assert len(usage.calls) == 2

    def test_verified_grid_usage_is_complete(self) -> None:
        usage = FakeUsage(verified=True)
        loader = Loader(TimeSeriesStore(), usage_sources={"grid-1": usage})

        loader.run_iteration(NOW)
        loader.run_iteration(NOW)

        assert len(usage.calls) == 1

    def test_failing_source_does_not_stop_run(self) -> None:
        failing = FailingSource()
        usage = FakeUsage()
        store = TimeSeriesStore()
        loader = Loader(store, usage_sources={"district-heat": usage}, spot_prices=failing)

        loader.run_iteration(NOW)

        assert failing.calls == 5 * 2
        assert store.last_usage_date() == date(2023, 5, 5)


class TestJsonFileSource:
    @pytest.fixture
    def usage_file(self, tmp_path: Path) -> Path:
        path = tmp_path / "usage.json"
        path.write_text(
            json.dumps(
                [
                    {"date": "2023-05-01", "hour": 0, "usage": 1.5, "verified": True},
                    {"date": "2023-05-02", "hour": 0, "usage": 2.5},
                ]
            )
        )
        return path

    def test_reads_usage(self, usage_file: Path) -> None:
        records = JsonFileSource(usage_file).usage()
        assert [r.usage for r in records] == [1.5, 2.5]
        assert records[0].verified is True

    def test_fetch_usage_filters_range(self, usage_file: Path) -> None:
        records = JsonFileSource(usage_file).fetch_usage(date(2023, 5, 2), date(2023, 5, 3))
        assert [r.date for r in records] == [date(2023, 5, 2)]

    def test_invalid_records_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"date": "2023-05-01", "hour": 30, "price": 1.0}]))

        with pytest.raises(ValueError):
            JsonFileSource(path).spot_prices()

    def test_temperature_files(self, tmp_path: Path) -> None:
        daily = tmp_path / "daily.json"
        daily.write_text(
            json.dumps(
                [
                    {"date": "2022-12-31", "mean_temperature": -3.0},
                    {"date": "2023-01-01", "mean_temperature": -1.0},
                ]
            )
        )
        source = JsonTemperatureSource(daily=daily)

        assert [r.mean_temperature for r in source.fetch_daily(2023)] == [-1.0]
        assert source.fetch_hourly(date(2023, 1, 1)) == []
