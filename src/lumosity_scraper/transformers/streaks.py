"""Monthly streak calendar reconstruction from streak intervals."""

from datetime import date, timedelta
from typing import Dict, Iterable, Optional

from ..models.relevant import StreakInterval
from ..scraper_logging import get_logger
from ..utils.dates import days_in_month, local_today

logger = get_logger(__name__)

MonthlyStreakCalendar = Dict[int, Optional[bool]]


def build_monthly_streaks(
    intervals: Optional[Iterable[StreakInterval]],
    year: int,
    month: int,
    today: Optional[date] = None,
) -> MonthlyStreakCalendar:
    """Day-by-day activity calendar of one month.

    Each day of the month maps to:
      - True  - covered by a streak interval and not after today
      - False - not covered, and already elapsed (or today)
      - None  - strictly after today

    Intervals are inclusive on both ends. Intervals missing a date are
    skipped; an interval ending before it starts covers nothing.

    Args:
        intervals: Streak intervals, any order
        year: Target year
        month: Target month, 1-based
        today: Reference day (local current date when None)

    Returns:
        Mapping of day-of-month (1..days in month) to True/False/None
    """
    today = today or local_today()
    first_day = date(year, month, 1)
    last_day = date(year, month, days_in_month(year, month))

    calendar: MonthlyStreakCalendar = {}
    for day in range(1, last_day.day + 1):
        calendar[day] = None if date(year, month, day) > today else False

    for interval in intervals or ():
        start, end = interval.start_date, interval.end_date
        if start is None or end is None:
            continue
        if end < start:
            logger.debug("Ignoring streak interval that ends before it starts",
                         start_date=start.isoformat(), end_date=end.isoformat())
            continue

        # Only the overlap with the month up to today can be confirmed
        current = max(start, first_day)
        stop = min(end, last_day, today)
        while current <= stop:
            calendar[current.day] = True
            current += timedelta(days=1)

    return calendar
