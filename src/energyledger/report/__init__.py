"""Report generation over an indexed snapshot."""

from energyledger.report.builder import ReportBuilder, build_report
from energyledger.report.models import Report

__all__ = ["ReportBuilder", "Report", "build_report"]
