"""Date handling helpers with explicit local-day semantics."""

import calendar
from datetime import UTC, date, datetime, tzinfo
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil import tz

from ..scraper_logging import get_logger

logger = get_logger(__name__)


def _zone(tz_name: Optional[str] = None) -> tzinfo:
    """The configured timezone, or the system local one when unset or unknown."""
    zone = tz.gettz(tz_name) if tz_name else tz.tzlocal()
    if zone is None:
        logger.warning("Unknown timezone, falling back to local time", timezone=tz_name)
        zone = tz.tzlocal()
    return zone


def parse_day(value: Any, tz_name: Optional[str] = None) -> Optional[date]:
    """Parse a payload date into a calendar day, or None if unusable.

    Accepts ``date``/``datetime`` objects, ISO-8601 strings ("2024-03-10",
    "2024-03-10T00:00:00Z"), other strings dateutil understands, and epoch
    milliseconds. Time of day is dropped; the calendar date written in the
    payload is kept as-is (no timezone shifting). An epoch carries no
    calendar date of its own, so it becomes the day of that instant in
    ``tz_name``, the same zone ``local_today`` uses.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, _zone(tz_name)).date()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date_parser.isoparse(text).date()
        except (ValueError, OverflowError):
            pass
        try:
            return date_parser.parse(text).date()
        except (ValueError, OverflowError, TypeError):
            logger.debug("Unparseable date value", value=text)
            return None
    return None


def local_now(tz_name: Optional[str] = None) -> datetime:
    """Current time in the configured timezone (system local when unset)."""
    return datetime.now(_zone(tz_name))


def local_today(tz_name: Optional[str] = None) -> date:
    return local_now(tz_name).date()


def days_in_month(year: int, month: int) -> int:
    """Number of days in a 1-based month."""
    return calendar.monthrange(year, month)[1]


def month_name(month: int) -> str:
    """English month name for a 1-based month ("March")."""
    return calendar.month_name[month]


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = moment or datetime.now(UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
