"""Dated daily report records derived from a Results Set."""

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import CamelModel
from .report import AccountInfo


class MonthSnapshot(CamelModel):
    year: int
    month: int
    month_name: str
    today: int


class StreakSnapshot(CamelModel):
    current: int = 0
    best: int = 0
    total: int = 0
    monthly_streaks: Dict[int, Optional[bool]] = Field(default_factory=dict)
    month_info: MonthSnapshot


class AccountStreaks(CamelModel):
    identity: str
    streaks: StreakSnapshot


class DailyStreaksReport(CamelModel):
    """Streak calendars of every successfully harvested account for one day."""

    report_date: dt.date
    streaks_data: List[AccountStreaks] = Field(default_factory=list)
    user_count: int = 0


class AccountStat(CamelModel):
    account_info: AccountInfo
    date: dt.date
    overall_lpi: Any = None
    problem_solving: Any = None
    speed: Any = None
    memory: Any = None
    attention: Any = None
    flexibility: Any = None
    math: Any = None


class DailyStatsReport(CamelModel):
    """Overall and per-area LPI of every successfully harvested account for one day."""

    report_date: dt.date
    stats: List[AccountStat] = Field(default_factory=list)
    user_count: int = 0
