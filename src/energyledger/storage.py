"""DuckDB storage layer for persisting the dataset and the generated report."""

import os
import tempfile
from pathlib import Path

import duckdb
import structlog

from energyledger.config import DEFAULT_DB_PATH
from energyledger.models import (
    Dataset,
    HourUsage,
    SpotPriceHour,
    TemperatureDay,
    TemperatureHour,
)
from energyledger.report.models import Report

log = structlog.get_logger()

# Rows are unique per meter, date and hour; TimeSeriesStore merges keep them that way
TABLES = ("spot_prices", "hourly_temperature", "daily_temperature", "power_usage")


class Storage:
    """DuckDB-based storage for the persisted dataset."""

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._con = duckdb.connect(str(self._db_path))
        self._init_schema()

    def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        self._con.execute("""
            CREATE TABLE IF NOT EXISTS spot_prices (
                date DATE,
                hour INTEGER CHECK (hour BETWEEN 0 AND 23),
                price DOUBLE
            )
        """)

        self._con.execute("""
            CREATE TABLE IF NOT EXISTS hourly_temperature (
                date DATE,
                hour INTEGER CHECK (hour BETWEEN 0 AND 23),
                temperature DOUBLE
            )
        """)

        self._con.execute("""
            CREATE TABLE IF NOT EXISTS daily_temperature (
                date DATE,
                mean_temperature DOUBLE
            )
        """)

        self._con.execute("""
            CREATE TABLE IF NOT EXISTS power_usage (
                meter VARCHAR,
                date DATE,
                hour INTEGER CHECK (hour BETWEEN 0 AND 23),
                usage DOUBLE,
                verified BOOLEAN
            )
        """)

        log.info("schema_initialized", db_path=str(self._db_path))

    def load_dataset(self) -> Dataset:
        """Read every table back into a Dataset, ordered by date and hour."""
        spot_prices = [
            SpotPriceHour(date=row[0], hour=row[1], price=row[2])
            for row in self._con.execute(
                "SELECT date, hour, price FROM spot_prices ORDER BY date, hour"
            ).fetchall()
        ]
        hourly_temperature = [
            TemperatureHour(date=row[0], hour=row[1], temperature=row[2])
            for row in self._con.execute(
                "SELECT date, hour, temperature FROM hourly_temperature ORDER BY date, hour"
            ).fetchall()
        ]
        daily_temperature = [
            TemperatureDay(date=row[0], mean_temperature=row[1])
            for row in self._con.execute(
                "SELECT date, mean_temperature FROM daily_temperature ORDER BY date"
            ).fetchall()
        ]

        power_usage: dict[str, list[HourUsage]] = {}
        for row in self._con.execute(
            "SELECT meter, date, hour, usage, verified FROM power_usage ORDER BY meter, date, hour"
        ).fetchall():
            power_usage.setdefault(row[0], []).append(
                HourUsage(date=row[1], hour=row[2], usage=row[3], verified=row[4])
            )

        dataset = Dataset(
            spot_prices=spot_prices,
            hourly_temperature=hourly_temperature,
            daily_temperature=daily_temperature,
            power_usage=power_usage,
        )
        log.info(
            "dataset_loaded",
            spot_prices=len(spot_prices),
            hourly_temperature=len(hourly_temperature),
            daily_temperature=len(daily_temperature),
            meters=len(power_usage),
        )
        return dataset

    def save_dataset(self, dataset: Dataset) -> None:
        """Replace all tables with the dataset in a single transaction."""
        self._con.begin()
        try:
            for table in TABLES:
                self._con.execute(f"DELETE FROM {table}")

            if dataset.spot_prices:
                self._con.executemany(
                    "INSERT INTO spot_prices (date, hour, price) VALUES (?, ?, ?)",
                    [(r.date, r.hour, r.price) for r in dataset.spot_prices],
                )
            if dataset.hourly_temperature:
                self._con.executemany(
                    "INSERT INTO hourly_temperature (date, hour, temperature) VALUES (?, ?, ?)",
                    [(r.date, r.hour, r.temperature) for r in dataset.hourly_temperature],
                )
            if dataset.daily_temperature:
                self._con.executemany(
                    "INSERT INTO daily_temperature (date, mean_temperature) VALUES (?, ?)",
                    [(r.date, r.mean_temperature) for r in dataset.daily_temperature],
                )
            usage_rows = [
                (meter, r.date, r.hour, r.usage, r.verified)
                for meter, series in dataset.power_usage.items()
                for r in series
            ]
            if usage_rows:
                self._con.executemany(
                    """
                    INSERT INTO power_usage (meter, date, hour, usage, verified)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    usage_rows,
                )
        except Exception:
            self._con.rollback()
            raise
        self._con.commit()

        log.info(
            "dataset_saved",
            spot_prices=len(dataset.spot_prices),
            power_usage=len(usage_rows),
            meters=len(dataset.power_usage),
        )

    def counts(self) -> dict[str, int]:
        """Row count per table."""
        return {
            table: self._con.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in TABLES
        }

    def close(self) -> None:
        """Close database connection."""
        self._con.close()

    def __enter__(self) -> "Storage":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def write_report(report: Report, path: Path | str) -> Path:
    """Write the report as JSON, replacing any previous file atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(report.model_dump_json(indent=2))
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    log.info("report_written", path=str(path))
    return path
