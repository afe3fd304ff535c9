"""Transformers from reconciled data into report shapes."""

from .stats import completion_rate, failure_report, format_account_report
from .streaks import build_monthly_streaks

__all__ = [
    "build_monthly_streaks",
    "completion_rate",
    "failure_report",
    "format_account_report",
]
