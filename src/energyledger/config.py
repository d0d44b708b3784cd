"""Runtime configuration defaults for the energy ledger."""

from datetime import date
from pathlib import Path
from zoneinfo import ZoneInfo

DEFAULT_DB_PATH = Path("data/energyledger.duckdb")
DEFAULT_REPORT_PATH = Path("data/report.json")

# All dates and hours are local to the building
TIMEZONE = ZoneInfo("Europe/Oslo")

# Every meter except this one is grid electricity
HEAT_METER = "district-heat"

# First date with usage data worth reporting on
DATASET_START = date(2021, 7, 1)

# Days colder than this are used for the usage/temperature regression
TRENDLINE_TEMPERATURE_BELOW = 15.0

HOURLY_REPORT_DAYS = 7
PRICE_REPORT_PAST_DAYS = 2
LAST_DAYS_TABLE_DAYS = 45

# Window the loader keeps refreshing on every run
LOADER_LOOKBACK_DAYS = 4
# Next-day spot prices are published early afternoon
SPOT_PRICES_TOMORROW_FROM_HOUR = 13
