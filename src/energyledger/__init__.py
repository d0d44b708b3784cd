"""Household energy usage, tariff pricing and reporting."""

__version__ = "0.1.0"
