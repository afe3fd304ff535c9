"""Tests for monthly streak calendar reconstruction."""

from datetime import date

import pytest

from lumosity_scraper.models.relevant import StreakInterval
from lumosity_scraper.transformers.streaks import build_monthly_streaks


def interval(start, end):
    return StreakInterval(start_date=start, end_date=end)


class TestCalendarShape:
    """Test day coverage and the past/today/future split."""

    def test_one_entry_per_day_of_month(self):
        """Test every month gets exactly its number of days."""
        today = date(2024, 6, 1)
        assert len(build_monthly_streaks([], 2024, 2, today)) == 29  # leap year
        assert len(build_monthly_streaks([], 2023, 2, today)) == 28
        assert len(build_monthly_streaks([], 2024, 4, today)) == 30
        assert list(build_monthly_streaks([], 2024, 1, today)) == list(range(1, 32))

    def test_empty_intervals_mark_past_false_and_future_none(self):
        """Test an empty list yields the initialized calendar."""
        calendar = build_monthly_streaks([], 2024, 3, date(2024, 3, 15))

        assert all(calendar[d] is False for d in range(1, 16))
        assert all(calendar[d] is None for d in range(16, 32))

    def test_none_intervals_treated_as_empty(self):
        """Test an absent interval list behaves like an empty one."""
        today = date(2024, 3, 15)
        assert build_monthly_streaks(None, 2024, 3, today) == build_monthly_streaks([], 2024, 3, today)

    def test_past_month_has_no_future_days(self):
        """Test a fully elapsed month never reports None."""
        calendar = build_monthly_streaks([], 2024, 2, date(2024, 3, 15))
        assert None not in calendar.values()

    def test_future_month_is_all_none(self):
        """Test a month that has not started is entirely None."""
        calendar = build_monthly_streaks([interval(date(2024, 4, 1), date(2024, 4, 5))], 2024, 4, date(2024, 3, 15))
        assert set(calendar.values()) == {None}


class TestIntervalCoverage:
    """Test which days intervals confirm."""

    def test_reference_example(self):
        """Test March 2024 with one interval from the 10th to the 12th, today the 15th."""
        calendar = build_monthly_streaks([interval(date(2024, 3, 10), date(2024, 3, 12))], 2024, 3, date(2024, 3, 15))

        assert all(calendar[d] is False for d in range(1, 10))
        assert all(calendar[d] is True for d in range(10, 13))
        assert all(calendar[d] is False for d in range(13, 16))
        assert all(calendar[d] is None for d in range(16, 32))

    def test_interval_ends_are_inclusive(self):
        """Test a single-day interval confirms that day."""
        calendar = build_monthly_streaks([interval(date(2024, 3, 5), date(2024, 3, 5))], 2024, 3, date(2024, 3, 15))
        assert calendar[5] is True
        assert calendar[4] is False
        assert calendar[6] is False

    def test_interval_running_past_today_stops_at_today(self):
        """Test days after today are never confirmed."""
        calendar = build_monthly_streaks([interval(date(2024, 3, 14), date(2024, 3, 20))], 2024, 3, date(2024, 3, 15))

        assert calendar[14] is True
        assert calendar[15] is True
        assert calendar[16] is None
        assert calendar[20] is None

    def test_interval_spanning_month_boundaries(self):
        """Test only the days inside the target month are marked."""
        calendar = build_monthly_streaks([interval(date(2024, 2, 27), date(2024, 3, 2))], 2024, 3, date(2024, 3, 15))

        assert calendar[1] is True
        assert calendar[2] is True
        assert calendar[3] is False

    def test_same_month_other_year_ignored(self):
        """Test an interval from the same month of another year marks nothing."""
        calendar = build_monthly_streaks([interval(date(2023, 3, 10), date(2023, 3, 12))], 2024, 3, date(2024, 3, 15))
        assert True not in calendar.values()

    def test_overlapping_intervals_never_unconfirm(self):
        """Test later intervals only add confirmed days."""
        calendar = build_monthly_streaks(
            [interval(date(2024, 3, 1), date(2024, 3, 5)), interval(date(2024, 3, 4), date(2024, 3, 6))],
            2024, 3, date(2024, 3, 15),
        )
        assert [calendar[d] for d in range(1, 8)] == [True] * 6 + [False]

    def test_reversed_interval_is_a_no_op(self):
        """Test an interval ending before it starts covers nothing."""
        calendar = build_monthly_streaks([interval(date(2024, 3, 12), date(2024, 3, 10))], 2024, 3, date(2024, 3, 15))
        assert True not in calendar.values()

    @pytest.mark.parametrize("start,end", [(None, date(2024, 3, 12)), (date(2024, 3, 10), None), (None, None)])
    def test_interval_with_missing_date_skipped(self, start, end):
        """Test intervals with unparseable dates contribute nothing."""
        calendar = build_monthly_streaks([interval(start, end)], 2024, 3, date(2024, 3, 15))
        assert True not in calendar.values()

    def test_idempotent_for_equal_inputs(self):
        """Test the same inputs always give the same calendar."""
        intervals = [interval(date(2024, 3, 1), date(2024, 3, 3)), interval(date(2024, 3, 10), date(2024, 3, 12))]
        today = date(2024, 3, 15)
        assert build_monthly_streaks(intervals, 2024, 3, today) == build_monthly_streaks(intervals, 2024, 3, today)

    def test_intervals_parsed_from_payload_strings(self):
        """Test ISO date strings, with or without a time part, resolve to days."""
        parsed = StreakInterval.model_validate({"startDate": "2024-03-10", "endDate": "2024-03-11"})
        calendar = build_monthly_streaks([parsed], 2024, 3, date(2024, 3, 15))
        assert calendar[10] is True and calendar[11] is True
