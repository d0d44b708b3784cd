"""Tariff model: rate tables, pricing regimes and the hourly pricing engine."""

from energyledger.tariff.engine import TariffEngine, TariffRegime, select_regime
from energyledger.tariff.rates import Fallback, RateTable

__all__ = ["TariffEngine", "TariffRegime", "select_regime", "Fallback", "RateTable"]
