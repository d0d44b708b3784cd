"""Tests for the command-line interface."""

import json
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest
from typer.testing import CliRunner

from energyledger import cli
from energyledger.cli import app
from energyledger.storage import Storage

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "ledger.duckdb"


def write_json(path: Path, records: list[dict[str, object]]) -> Path:
    path.write_text(json.dumps(records))
    return path


class TestMergeCommands:
    def test_merge_usage(self, tmp_path: Path, db_path: Path) -> None:
        file = write_json(
            tmp_path / "usage.json",
            [{"date": "2023-05-01", "hour": h, "usage": 1.0} for h in range(24)],
        )

        result = runner.invoke(app, ["merge-usage", "grid-1", str(file), "--db-path", str(db_path)])

        assert result.exit_code == 0
        with Storage(db_path) as storage:
            assert len(storage.load_dataset().power_usage["grid-1"]) == 24

    def test_merge_daily_temperature(self, tmp_path: Path, db_path: Path) -> None:
        file = write_json(
            tmp_path / "daily.json", [{"date": "2023-05-01", "mean_temperature": 4.5}]
        )

        result = runner.invoke(
            app, ["merge-temperature", str(file), "--daily", "--db-path", str(db_path)]
        )

        assert result.exit_code == 0
        with Storage(db_path) as storage:
            assert storage.counts()["daily_temperature"] == 1

    def test_duplicate_batch_fails(self, tmp_path: Path, db_path: Path) -> None:
        file = write_json(
            tmp_path / "prices.json",
            [{"date": "2023-05-01", "hour": 0, "price": 1.0}] * 2,
        )

        result = runner.invoke(app, ["merge-spot-prices", str(file), "--db-path", str(db_path)])

        assert result.exit_code != 0


class TestReportCommand:
    def test_writes_report(self, tmp_path: Path, db_path: Path) -> None:
        output = tmp_path / "report.json"

        result = runner.invoke(
            app,
            ["report", "--output", str(output)],
            env={"ENERGYLEDGER_DB": str(db_path)},
        )

        assert result.exit_code == 0
        assert set(json.loads(output.read_text())) >= {"daily", "prices", "cost", "table"}


class TestRunCommand:
    NOW = datetime(2023, 5, 5, 9, 0)

    @pytest.fixture(autouse=True)
    def fixed_now(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cli, "_now", lambda: self.NOW)

    def test_loads_saves_and_reports(self, tmp_path: Path, db_path: Path) -> None:
        days = [date(2023, 4, 28) + timedelta(days=i) for i in range(8)]
        usage = write_json(
            tmp_path / "usage.json",
            [
                {"date": d.isoformat(), "hour": h, "usage": 1.0, "verified": True}
                for d in days
                for h in range(24)
            ],
        )
        prices = write_json(
            tmp_path / "prices.json",
            [{"date": d.isoformat(), "hour": h, "price": 900.0} for d in days for h in range(24)],
        )
        daily = write_json(
            tmp_path / "daily.json",
            [{"date": d.isoformat(), "mean_temperature": 6.0} for d in days[:-1]],
        )
        output = tmp_path / "report.json"

        result = runner.invoke(
            app,
            [
                "run",
                "--usage", f"grid-1={usage}",
                "--spot-prices", str(prices),
                "--daily-temperature", str(daily),
                "--output", str(output),
                "--db-path", str(db_path),
            ],
        )

        assert result.exit_code == 0, result.output
        with Storage(db_path) as storage:
            counts = storage.counts()
        # Only the lookback window from May 1 is loaded
        assert counts["power_usage"] == 5 * 24
        assert counts["spot_prices"] == 5 * 24
        assert counts["daily_temperature"] == 7
        assert json.loads(output.read_text())["daily"]["rows"][-1]["date"] == "2023-05-05"

    def test_rejects_malformed_usage_option(self, tmp_path: Path, db_path: Path) -> None:
        output = tmp_path / "report.json"

        result = runner.invoke(
            app, ["run", "--usage", "grid-1", "--output", str(output), "--db-path", str(db_path)]
        )

        assert result.exit_code != 0


class TestStatusCommand:
    def test_missing_database(self, db_path: Path) -> None:
        result = runner.invoke(app, ["status", "--db-path", str(db_path)])

        assert result.exit_code == 0
        assert "No database found" in result.output
