"""Exceptions raised by the energy ledger."""


class EnergyLedgerError(Exception):
    """Base class for all energyledger errors."""


class MergeContractError(EnergyLedgerError, ValueError):
    """A merge batch contains more than one record for the same date and hour."""


class RateUnavailable(EnergyLedgerError, LookupError):
    """A rate table has no value for the requested month."""

    def __init__(self, table: str, year_month: object) -> None:
        super().__init__(f"No rate in {table} for {year_month}")
        self.table = table
        self.year_month = year_month
