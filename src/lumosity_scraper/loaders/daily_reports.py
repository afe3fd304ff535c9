"""Dated daily report records and their JSON document store."""

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar, Union

from pydantic import ValidationError

from ..models.daily import (
    AccountStat,
    AccountStreaks,
    DailyStatsReport,
    DailyStreaksReport,
    MonthSnapshot,
    StreakSnapshot,
)
from ..models.report import AccountReport, HarvestResult, StreaksBlock
from ..resilience import ResultsWriteError, ScraperError
from ..scraper_logging import get_logger
from ..utils.coerce import to_number_or_none
from ..utils.dates import local_today, parse_day
from .results import write_json_atomic

logger = get_logger(__name__)

ReportT = TypeVar("ReportT", DailyStreaksReport, DailyStatsReport)

# Collection names inside the store file, one per report kind
COLLECTIONS: Dict[type, str] = {
    DailyStreaksReport: "dailyStreaksReports",
    DailyStatsReport: "dailyLumosityReports",
}

# Cognitive areas tracked in daily stats, keyed by normalized area slug
AREA_FIELDS = {
    "problemsolving": "problem_solving",
    "speed": "speed",
    "memory": "memory",
    "attention": "attention",
    "flexibility": "flexibility",
    "math": "math",
}


def _successful(results: Sequence[HarvestResult]) -> List[AccountReport]:
    return [r for r in results if isinstance(r, AccountReport)]


def _report_day(report_date: Union[date, datetime, str, None], tz_name: Optional[str]) -> date:
    if report_date is None:
        return local_today(tz_name)
    day = parse_day(report_date, tz_name)
    if day is None:
        raise ValueError(f"Invalid report date: {report_date!r}")
    return day


def _streak_snapshot(streaks: StreaksBlock) -> StreakSnapshot:
    info = streaks.month_info
    return StreakSnapshot(
        current=streaks.current,
        best=streaks.best,
        total=streaks.total,
        monthly_streaks=dict(streaks.monthly_streaks),
        month_info=MonthSnapshot(
            year=info.year,
            month=info.month,
            month_name=info.month_name,
            today=info.today,
        ),
    )


def build_daily_streaks_report(
    results: Sequence[HarvestResult],
    report_date: Union[date, datetime, str, None] = None,
    tz_name: Optional[str] = None,
) -> DailyStreaksReport:
    """Streak calendars of the successful reports of a Results Set."""
    entries = [
        AccountStreaks(identity=r.account_info.identity, streaks=_streak_snapshot(r.streaks))
        for r in _successful(results)
    ]
    return DailyStreaksReport(
        report_date=_report_day(report_date, tz_name),
        streaks_data=entries,
        user_count=len(entries),
    )


def _area_scores(report: AccountReport) -> Dict[str, Any]:
    scores: Dict[str, Any] = {}
    for slug, area in report.lpi.by_area.items():
        key = slug.lower().replace("-", "").replace("_", "").replace(" ", "")
        field = AREA_FIELDS.get(key)
        if field:
            scores[field] = area.current
    return scores


def build_daily_stats_report(
    results: Sequence[HarvestResult],
    report_date: Union[date, datetime, str, None] = None,
    tz_name: Optional[str] = None,
) -> DailyStatsReport:
    """Overall and per-area LPI of the successful reports of a Results Set.

    Each entry is dated with the day its data was extracted; "N/A" scores
    are stored as missing.
    """
    day = _report_day(report_date, tz_name)
    stats = []
    for report in _successful(results):
        stats.append(AccountStat(
            account_info=report.account_info,
            date=parse_day(report.account_info.extracted_at, tz_name) or day,
            overall_lpi=to_number_or_none(report.lpi.overall),
            **_area_scores(report),
        ))
    return DailyStatsReport(report_date=day, stats=stats, user_count=len(stats))


def find_account_streaks(results: Sequence[HarvestResult], identity: str) -> Optional[StreaksBlock]:
    """The streaks block of the successful report for ``identity``, if any."""
    wanted = identity.strip().lower()
    for report in _successful(results):
        if report.account_info.identity.lower() == wanted:
            return report.streaks
    return None


class DailyReportStore(Generic[ReportT]):
    """JSON-file document store holding at most one record per day.

    One file can hold every report kind; each kind lives in its own
    collection and is keyed uniquely by ``reportDate``.

    Usage:
        store = DailyReportStore(Path("daily_reports.json"), DailyStreaksReport)
        store.upsert(report)
        store.get(date(2024, 3, 15))
    """

    def __init__(self, path: Union[str, Path], model: Type[ReportT]):
        if model not in COLLECTIONS:
            raise ValueError(f"Unsupported report kind: {model.__name__}")
        self.path = Path(path)
        self.model = model
        self.collection = COLLECTIONS[model]

    def _load_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ScraperError(f"Failed to read daily reports from {self.path}: {e}") from e
        if not isinstance(document, dict):
            raise ScraperError(f"{self.path} is not a daily report store")
        return document

    def _records(self, document: Dict[str, Any]) -> List[ReportT]:
        raw = document.get(self.collection) or []
        if not isinstance(raw, list):
            raise ScraperError(f"{self.collection} in {self.path} is not a list")
        records = []
        for index, record in enumerate(raw):
            try:
                records.append(self.model.model_validate(record))
            except ValidationError as e:
                raise ScraperError(
                    f"Record #{index} of {self.collection} in {self.path} is invalid: {e}"
                ) from e
        return records

    def all(self) -> List[ReportT]:
        """Every record of this kind, oldest first."""
        return sorted(self._records(self._load_document()), key=lambda r: r.report_date)

    def get(self, day: Union[date, datetime, str]) -> Optional[ReportT]:
        wanted = _report_day(day, None)
        return next((r for r in self.all() if r.report_date == wanted), None)

    def upsert(self, report: ReportT) -> bool:
        """Insert ``report`` or replace the record of the same day.

        Returns:
            True if an existing record was replaced
        """
        if not isinstance(report, self.model):
            raise TypeError(f"Expected {self.model.__name__}, got {type(report).__name__}")

        document = self._load_document()
        existing = self._records(document)
        records = [r for r in existing if r.report_date != report.report_date]
        replaced = len(records) != len(existing)
        records.append(report)
        records.sort(key=lambda r: r.report_date)
        document[self.collection] = [r.to_wire() for r in records]

        try:
            write_json_atomic(self.path, document)
        except (OSError, TypeError, ValueError) as e:
            raise ResultsWriteError(f"Failed to save daily reports to {self.path}: {e}") from e

        logger.info("Daily report saved", kind=self.collection,
                    report_date=report.report_date.isoformat(),
                    user_count=report.user_count, replaced=replaced)
        return replaced
