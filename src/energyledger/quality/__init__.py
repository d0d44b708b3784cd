"""Data health checks."""

from energyledger.quality.checks import DatasetChecker

__all__ = ["DatasetChecker"]
