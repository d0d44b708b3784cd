"""Data ingestion from provider sources into the time-series store."""

from energyledger.ingestion.loader import Loader, handle_failure
from energyledger.ingestion.sources import JsonFileSource, JsonTemperatureSource

__all__ = ["Loader", "JsonFileSource", "JsonTemperatureSource", "handle_failure"]
