"""Health checks over the persisted dataset."""

from collections.abc import Sequence
from datetime import date, timedelta

import structlog

from energyledger.config import HEAT_METER
from energyledger.dates import dates_in_range
from energyledger.models import Dataset, DateHour, HourUsage, QualityCheckResult, QualityStatus
from energyledger.store import TimeSeriesStore

log = structlog.get_logger()


class DatasetChecker:
    """Runs data quality checks on a Dataset."""

    def __init__(
        self,
        today: date,
        completeness_days: int = 7,
        max_age_days: int = 2,
        heat_meter: str = HEAT_METER,
    ) -> None:
        self.today = today
        self.completeness_days = completeness_days
        self.max_age_days = max_age_days
        self.heat_meter = heat_meter

    def check(self, dataset: Dataset) -> list[QualityCheckResult]:
        """Run all quality checks on the dataset."""
        results = []

        for meter, series in sorted(dataset.power_usage.items()):
            results.append(self._check_uniqueness(meter, series))
            results.append(self._check_ordering(meter, series))
            results.append(self._check_day_completeness(dataset, meter))
            if meter != self.heat_meter:
                results.append(self._check_unverified(meter, series))

        results.append(self._check_spot_price_coverage(dataset))
        results.append(self._check_freshness(dataset))

        passed = sum(1 for r in results if r.status == QualityStatus.PASS)
        log.info("dataset_quality_complete", passed=passed, total=len(results))

        return results

    def _check_uniqueness(self, meter: str, series: Sequence[HourUsage]) -> QualityCheckResult:
        keys = [DateHour.of(r) for r in series]
        duplicates = len(keys) - len(set(keys))

        if duplicates == 0:
            status = QualityStatus.PASS
            message = f"All {len(series)} readings are unique by date+hour"
        else:
            status = QualityStatus.FAIL
            message = f"Found {duplicates} duplicate readings"

        return QualityCheckResult(
            check_name=f"{meter}_uniqueness",
            status=status,
            metric_value=duplicates,
            threshold=0,
            message=message,
        )

    def _check_ordering(self, meter: str, series: Sequence[HourUsage]) -> QualityCheckResult:
        keys = [DateHour.of(r) for r in series]
        out_of_order = sum(1 for a, b in zip(keys, keys[1:]) if a >= b)

        if out_of_order == 0:
            status = QualityStatus.PASS
            message = "Readings are sorted by date and hour"
        else:
            status = QualityStatus.FAIL
            message = f"Found {out_of_order} readings out of order"

        return QualityCheckResult(
            check_name=f"{meter}_ordering",
            status=status,
            metric_value=out_of_order,
            threshold=0,
            message=message,
        )

    def _check_day_completeness(self, dataset: Dataset, meter: str) -> QualityCheckResult:
        # Today is still in progress
        last = self.today - timedelta(days=1)
        first = last - timedelta(days=self.completeness_days - 1)
        complete = TimeSeriesStore(dataset).complete_dates(meter)
        missing = [d for d in dates_in_range(first, last) if d not in complete]

        if not missing:
            status = QualityStatus.PASS
            message = f"All {self.completeness_days} days up to {last} have 24 hours"
        elif len(missing) <= 1:
            status = QualityStatus.WARN
            message = f"Incomplete day: {missing[0]}"
        else:
            status = QualityStatus.FAIL
            message = f"{len(missing)} of the last {self.completeness_days} days are incomplete"

        return QualityCheckResult(
            check_name=f"{meter}_day_completeness",
            status=status,
            metric_value=len(missing),
            threshold=0,
            message=message,
        )

    def _check_unverified(self, meter: str, series: Sequence[HourUsage]) -> QualityCheckResult:
        unverified = sum(1 for r in series if r.verified is False)

        if unverified == 0:
            status = QualityStatus.PASS
            message = "No unverified readings"
        else:
            # Preliminary readings are normal for the most recent days
            status = QualityStatus.WARN
            message = f"{unverified} readings are not verified yet"

        return QualityCheckResult(
            check_name=f"{meter}_unverified",
            status=status,
            metric_value=unverified,
            threshold=0,
            message=message,
        )

    def _check_spot_price_coverage(self, dataset: Dataset) -> QualityCheckResult:
        usage_dates = {r.date for series in dataset.power_usage.values() for r in series}
        if not usage_dates:
            return QualityCheckResult(
                check_name="spot_price_coverage",
                status=QualityStatus.WARN,
                message="No usage to check spot prices against",
            )

        priced = {r.date for r in dataset.spot_prices}
        missing = sorted(d for d in usage_dates if d not in priced)
        pct = len(missing) / len(usage_dates) * 100

        if not missing:
            status = QualityStatus.PASS
            message = f"Spot prices exist for all {len(usage_dates)} usage dates"
        else:
            status = QualityStatus.FAIL if pct > 5 else QualityStatus.WARN
            message = f"{len(missing)} usage dates ({pct:.1f}%) lack spot prices, first {missing[0]}"

        return QualityCheckResult(
            check_name="spot_price_coverage",
            status=status,
            metric_value=len(missing),
            threshold=0,
            message=message,
        )

    def _check_freshness(self, dataset: Dataset) -> QualityCheckResult:
        last_date = TimeSeriesStore(dataset).last_usage_date()
        if last_date is None:
            return QualityCheckResult(
                check_name="usage_freshness",
                status=QualityStatus.FAIL,
                message="No usage records to check",
            )

        age_days = (self.today - last_date).days

        if age_days <= self.max_age_days:
            status = QualityStatus.PASS
            message = f"Latest usage is from {last_date}"
        elif age_days <= self.max_age_days * 2:
            status = QualityStatus.WARN
            message = f"Usage is stale: {age_days} days old (threshold: {self.max_age_days})"
        else:
            status = QualityStatus.FAIL
            message = f"Usage is very stale: {age_days} days old (threshold: {self.max_age_days})"

        return QualityCheckResult(
            check_name="usage_freshness",
            status=status,
            metric_value=age_days,
            threshold=self.max_age_days,
            message=message,
        )
