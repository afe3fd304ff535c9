"""Tests for daily report records and their per-day store."""

import json
from datetime import date

import pytest

from lumosity_scraper.extractors.responses import extract_relevant_data
from lumosity_scraper.loaders.daily_reports import (
    DailyReportStore,
    build_daily_stats_report,
    build_daily_streaks_report,
    find_account_streaks,
)
from lumosity_scraper.models.daily import DailyStatsReport, DailyStreaksReport
from lumosity_scraper.models.relevant import RelevantData
from lumosity_scraper.resilience import ScraperError
from lumosity_scraper.transformers.stats import failure_report, format_account_report
from tests.fakes import profile_response


@pytest.fixture
def result_set(sample_profile, accounts, fixed_now):
    return [
        format_account_report(extract_relevant_data([profile_response(sample_profile)]), accounts[0], fixed_now),
        failure_report(accounts[1], RuntimeError("boom"), fixed_now),
        format_account_report(RelevantData(), accounts[2], fixed_now),
    ]


class TestBuildReports:
    """Test record construction from a Results Set."""

    def test_streaks_report_skips_failures(self, result_set):
        report = build_daily_streaks_report(result_set, report_date="2024-03-15")

        assert report.report_date == date(2024, 3, 15)
        assert report.user_count == 2
        assert [e.identity for e in report.streaks_data] == ["a@example.com", "c@example.com"]
        first = report.streaks_data[0].streaks
        assert (first.current, first.best, first.total) == (3, 9, 2)
        assert first.month_info.month_name == "March"
        assert first.monthly_streaks[1] is True

    def test_stats_report(self, result_set):
        report = build_daily_stats_report(result_set, report_date=date(2024, 3, 15))

        assert report.user_count == 2
        stat = report.stats[0]
        assert stat.date == date(2024, 3, 15)
        assert stat.overall_lpi == 1200
        assert (stat.speed, stat.memory) == (1100, 950)
        assert stat.math is None
        assert stat.problem_solving is None

    def test_na_scores_stored_as_missing(self, result_set):
        stat = build_daily_stats_report(result_set, report_date="2024-03-15").stats[1]
        assert stat.overall_lpi is None

    def test_default_date_is_today(self, result_set):
        report = build_daily_streaks_report(result_set, tz_name="UTC")
        assert isinstance(report.report_date, date)

    def test_invalid_date(self, result_set):
        with pytest.raises(ValueError):
            build_daily_streaks_report(result_set, report_date="not a date")

    def test_wire_format(self, result_set):
        wire = build_daily_stats_report(result_set, report_date="2024-03-15").to_wire()
        assert wire["reportDate"] == "2024-03-15"
        assert wire["userCount"] == 2
        assert wire["stats"][0]["overallLpi"] == 1200
        assert wire["stats"][0]["accountInfo"]["cohortLabel"] == "study-a"


class TestFindAccountStreaks:
    def test_case_insensitive_lookup(self, result_set):
        block = find_account_streaks(result_set, "  A@Example.com ")
        assert block.current == 3

    def test_failed_or_unknown_account(self, result_set):
        assert find_account_streaks(result_set, "b@example.com") is None
        assert find_account_streaks(result_set, "nobody@example.com") is None


class TestDailyReportStore:
    """Test the one-record-per-day upsert store."""

    def test_upsert_then_replace(self, tmp_path, result_set):
        store = DailyReportStore(tmp_path / "daily.json", DailyStreaksReport)

        assert store.upsert(build_daily_streaks_report(result_set, report_date="2024-03-15")) is False
        assert store.upsert(build_daily_streaks_report(result_set[:1], report_date="2024-03-15")) is True

        records = store.all()
        assert len(records) == 1
        assert records[0].user_count == 1

    def test_records_sorted_by_day(self, tmp_path, result_set):
        store = DailyReportStore(tmp_path / "daily.json", DailyStreaksReport)
        store.upsert(build_daily_streaks_report(result_set, report_date="2024-03-16"))
        store.upsert(build_daily_streaks_report(result_set, report_date="2024-03-14"))

        assert [r.report_date for r in store.all()] == [date(2024, 3, 14), date(2024, 3, 16)]
        assert store.get("2024-03-16").report_date == date(2024, 3, 16)
        assert store.get(date(2024, 3, 15)) is None

    def test_kinds_share_a_file(self, tmp_path, result_set):
        path = tmp_path / "daily.json"
        DailyReportStore(path, DailyStreaksReport).upsert(build_daily_streaks_report(result_set, report_date="2024-03-15"))
        DailyReportStore(path, DailyStatsReport).upsert(build_daily_stats_report(result_set, report_date="2024-03-15"))

        document = json.loads(path.read_text(encoding="utf-8"))
        assert set(document) == {"dailyStreaksReports", "dailyLumosityReports"}
        assert DailyReportStore(path, DailyStatsReport).get("2024-03-15").stats[0].speed == 1100

    def test_missing_file_is_empty(self, tmp_path):
        assert DailyReportStore(tmp_path / "none.json", DailyStatsReport).all() == []

    def test_wrong_kind_rejected(self, tmp_path, result_set):
        store = DailyReportStore(tmp_path / "daily.json", DailyStatsReport)
        with pytest.raises(TypeError):
            store.upsert(build_daily_streaks_report(result_set, report_date="2024-03-15"))

    def test_unsupported_model(self, tmp_path):
        with pytest.raises(ValueError):
            DailyReportStore(tmp_path / "daily.json", RelevantData)

    @pytest.mark.parametrize("content", [
        "[1, 2]",
        "{",
        '{"dailyStreaksReports": {"reportDate": "2024-03-15"}}',
        '{"dailyStreaksReports": [{"reportDate": "garbage"}]}',
    ])
    def test_corrupt_store(self, tmp_path, content):
        path = tmp_path / "daily.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ScraperError):
            DailyReportStore(path, DailyStreaksReport).all()

    def test_invalid_record_blocks_upsert(self, tmp_path, result_set):
        path = tmp_path / "daily.json"
        path.write_text('{"dailyStreaksReports": [{"reportDate": "garbage"}]}', encoding="utf-8")
        store = DailyReportStore(path, DailyStreaksReport)

        with pytest.raises(ScraperError, match="Record #0 of dailyStreaksReports"):
            store.upsert(build_daily_streaks_report(result_set, report_date="2024-03-15"))

        assert "garbage" in path.read_text(encoding="utf-8")
