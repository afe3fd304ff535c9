"""Loaders persisting harvest output: the Results Set and daily report records."""

from .daily_reports import (
    DailyReportStore,
    build_daily_stats_report,
    build_daily_streaks_report,
    find_account_streaks,
)
from .results import read_results, summarize_results, write_results

__all__ = [
    "DailyReportStore",
    "build_daily_stats_report",
    "build_daily_streaks_report",
    "find_account_streaks",
    "read_results",
    "summarize_results",
    "write_results",
]
