"""Output shapes of a harvest: one report per account, success or failure."""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import Field

from .base import CamelModel
from .relevant import Achievements, DailyStats, FitTestResults, GameProgress, Number, TrainingSession

NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"

# A score that falls back to the "N/A" marker when the payload had none
Score = Union[int, float, str]


class AccountInfo(CamelModel):
    identity: str
    cohort_label: str
    extracted_at: str


class Summary(CamelModel):
    user: str = UNKNOWN
    full_name: str = ""
    premium: bool = False
    age_cohort: str = UNKNOWN
    member_since: Optional[Any] = None
    account_type: Optional[Any] = None


class AreaScore(CamelModel):
    name: Optional[str] = None
    current: Optional[Number] = None
    first: Optional[Number] = None
    best: Optional[Number] = None
    play_count: Optional[Number] = None
    improvement: Number = 0


class LpiBlock(CamelModel):
    overall: Score = NOT_AVAILABLE
    best: Score = NOT_AVAILABLE
    first: Score = NOT_AVAILABLE
    by_area: Dict[str, AreaScore] = Field(default_factory=dict)


class TopGame(CamelModel):
    rank: int
    game: Optional[str] = None
    name: Optional[str] = None
    area: Optional[str] = None
    area_name: Optional[str] = None
    lpi: Optional[Number] = None
    first_lpi: Optional[Number] = None
    best_lpi: Optional[Number] = None
    play_count: Number = 0
    improvement: Number = 0
    last_played_at: Optional[Any] = None


class ImprovedEntry(CamelModel):
    rank: int
    game: Optional[str] = None
    name: Optional[str] = None
    area: Optional[str] = None
    area_name: Optional[str] = None
    improvement: Number = 0
    percent_increase: Optional[Number] = None
    play_count: Number = 0


class Rankings(CamelModel):
    top_games: List[TopGame] = Field(default_factory=list)
    most_improved: List[ImprovedEntry] = Field(default_factory=list)


class MonthInfo(CamelModel):
    year: int
    month: int
    month_name: str
    today: int
    days_in_month: int
    days_played: int
    days_missed: int
    future_days: int
    completion_rate: str


class StreaksBlock(CamelModel):
    current: int = 0
    best: int = 0
    total: int = 0
    monthly_streaks: Dict[int, Optional[bool]] = Field(default_factory=dict)
    month_info: MonthInfo


class AreaPercentileView(CamelModel):
    name: Optional[str] = None
    current: str
    best: str


class Percentiles(CamelModel):
    overall: Score = NOT_AVAILABLE
    best: Score = NOT_AVAILABLE
    by_area: Dict[str, AreaPercentileView] = Field(default_factory=dict)


class Training(CamelModel):
    total_sessions: Number = 0
    total_time_minutes: Number = 0
    average_session_time: Number = 0
    total_games_played: Number = 0
    recent_sessions: List[TrainingSession] = Field(default_factory=list)


class Comparison(CamelModel):
    age_cohort: Score = NOT_AVAILABLE
    rank: Score = NOT_AVAILABLE
    best_rank: Score = NOT_AVAILABLE
    total_users: Score = NOT_AVAILABLE


class AccountReport(CamelModel):
    """Normalized statistics for one successfully harvested account."""

    account_info: AccountInfo
    summary: Summary
    lpi: LpiBlock
    rankings: Rankings
    streaks: StreaksBlock
    percentiles: Percentiles
    training: Training
    fit_test: Optional[FitTestResults] = None
    game_progress: List[GameProgress] = Field(default_factory=list)
    daily_stats: Optional[DailyStats] = None
    achievements: Optional[Achievements] = None
    comparison: Comparison

    @property
    def success(self) -> bool:
        return True


class FailedAccountReport(CamelModel):
    """Placeholder kept in the Results Set for an account that could not be harvested."""

    account_info: AccountInfo
    error: str
    success: Literal[False] = False


HarvestResult = Union[AccountReport, FailedAccountReport]


def parse_result(payload: Dict[str, Any]) -> HarvestResult:
    """Rebuild a report from its persisted JSON form."""
    if payload.get("success") is False or "error" in payload:
        return FailedAccountReport.model_validate(payload)
    return AccountReport.model_validate(payload)
