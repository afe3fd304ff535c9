"""Pydantic models for accounts, captured data, reports and daily records."""

from .accounts import Account
from .base import CamelModel
from .daily import (
    AccountStat,
    AccountStreaks,
    DailyStatsReport,
    DailyStreaksReport,
    MonthSnapshot,
    StreakSnapshot,
)
from .relevant import (
    Achievements,
    AreaLpi,
    AreaPercentile,
    CapturedResponse,
    Comparisons,
    DailyStats,
    FitTestResults,
    GameProgress,
    GameRanking,
    ImprovedGame,
    LpiSummary,
    RelevantData,
    StreakHistory,
    StreakInterval,
    TrainingDay,
    TrainingHistory,
    TrainingSession,
    UserInfo,
)
from .report import (
    NOT_AVAILABLE,
    UNKNOWN,
    AccountInfo,
    AccountReport,
    FailedAccountReport,
    HarvestResult,
    MonthInfo,
    StreaksBlock,
    parse_result,
)

__all__ = [
    "Account",
    "AccountInfo",
    "AccountReport",
    "AccountStat",
    "AccountStreaks",
    "Achievements",
    "AreaLpi",
    "AreaPercentile",
    "CamelModel",
    "CapturedResponse",
    "Comparisons",
    "DailyStats",
    "DailyStatsReport",
    "DailyStreaksReport",
    "FailedAccountReport",
    "FitTestResults",
    "GameProgress",
    "GameRanking",
    "HarvestResult",
    "ImprovedGame",
    "LpiSummary",
    "MonthInfo",
    "MonthSnapshot",
    "NOT_AVAILABLE",
    "RelevantData",
    "StreakHistory",
    "StreakInterval",
    "StreakSnapshot",
    "StreaksBlock",
    "TrainingDay",
    "TrainingHistory",
    "TrainingSession",
    "UNKNOWN",
    "UserInfo",
    "parse_result",
]
