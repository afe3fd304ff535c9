"""Canonical models for the data reconciled out of captured API responses.

Every field is optional: the remote payloads are duck-typed and any section
can be missing from a session. Values arrive here already coerced by the
extractor, so construction does not depend on the raw payload's types.
"""

from datetime import date
from typing import Any, List, Optional, Union

from pydantic import Field

from .base import CamelModel

Number = Union[int, float]


class CapturedResponse(CamelModel):
    """A JSON network response recorded during one browser session."""

    source_url: str = Field(..., alias="sourceURL")
    body: Any = None


class UserInfo(CamelModel):
    id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: str = ""
    email: Optional[str] = None
    age_cohort: Optional[str] = None
    has_premium: Optional[bool] = None
    member_since: Optional[Any] = None
    timezone: Optional[str] = None
    profile_picture: Optional[Any] = None
    account_type: Optional[Any] = None


class AreaLpi(CamelModel):
    area_slug: Optional[str] = None
    area_name: Optional[str] = None
    lpi: Optional[Number] = None
    first_lpi: Optional[Number] = None
    best_lpi: Optional[Number] = None
    updated_at: Optional[Any] = None
    play_count: Optional[Number] = None
    average_score: Optional[Number] = None


class LpiSummary(CamelModel):
    overall_lpi: Optional[Number] = None
    best_overall_lpi: Optional[Number] = None
    first_overall_lpi: Optional[Number] = None
    updated_at: Optional[Any] = None
    lpis_by_area: Optional[List[AreaLpi]] = None


class GameRanking(CamelModel):
    game_slug: Optional[str] = None
    game_name: Optional[str] = None
    area_slug: Optional[str] = None
    area_name: Optional[str] = None
    lpi: Number = 0
    first_lpi: Optional[Number] = None
    best_lpi: Optional[Number] = None
    play_count: Number = 0
    last_played_at: Optional[Any] = None
    average_score: Optional[Number] = None
    best_score: Optional[Number] = None
    first_score: Optional[Number] = None
    recent_scores: List[Any] = Field(default_factory=list)
    improvement: Number = 0


class ImprovedGame(CamelModel):
    game_slug: Optional[str] = None
    game_name: Optional[str] = None
    area_slug: Optional[str] = None
    area_name: Optional[str] = None
    lpi_increase: Number = 0
    percent_increase: Optional[Number] = None
    bucket: Optional[Any] = None
    play_count: Number = 0
    first_lpi: Optional[Number] = None
    current_lpi: Optional[Number] = None


class AreaPercentile(CamelModel):
    area_slug: Optional[str] = None
    area_name: Optional[str] = None
    percentile: Optional[Number] = None
    best_percentile: Optional[Number] = None


class Comparisons(CamelModel):
    """Percentile standing of the user inside their age cohort."""

    age_cohort: str
    overall_percentile: Optional[Number] = None
    best_overall_percentile: Optional[Number] = None
    percentile_by_area: List[AreaPercentile] = Field(default_factory=list)
    total_users: Optional[Number] = None
    rank: Optional[Number] = None
    best_rank: Optional[Number] = None


class TrainingDay(CamelModel):
    date: Optional[Any] = None
    games_played: Number = 0
    total_time: Number = 0
    lpi_gained: Number = 0
    session_count: Number = 0
    games_summary: List[Any] = Field(default_factory=list)


class StreakInterval(CamelModel):
    """A contiguous run of training days, both ends inclusive."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    length: Optional[int] = None
    is_active: bool = False
    training_days: List[TrainingDay] = Field(default_factory=list)


class StreakHistory(CamelModel):
    current_streak: Optional[StreakInterval] = None
    best_streak: Optional[StreakInterval] = None
    total_streaks: int = 0
    all_streaks: List[StreakInterval] = Field(default_factory=list)
    streak_days: Number = 0
    longest_streak_days: Number = 0


class FitTestGamePlay(CamelModel):
    score: Optional[Number] = None
    lpi: Optional[Number] = None
    finished_at: Optional[Any] = None
    duration: Optional[Number] = None
    accuracy: Optional[Number] = None


class FitTestPercentile(CamelModel):
    game_slug: Optional[str] = None
    game_name: Optional[str] = None
    area_slug: Optional[str] = None
    area_name: Optional[str] = None
    percentile: Optional[Number] = None
    score: Optional[Number] = None
    game_play: FitTestGamePlay = Field(default_factory=FitTestGamePlay)


class FitTestResults(CamelModel):
    completed_at: Optional[Any] = None
    overall_score: Optional[Number] = None
    overall_percentile: Optional[Number] = None
    percentiles: List[FitTestPercentile] = Field(default_factory=list)


class SessionGame(CamelModel):
    slug: Optional[str] = None
    name: Optional[str] = None
    score: Optional[Number] = None
    lpi: Optional[Number] = None
    time_spent: Optional[Number] = None
    accuracy: Optional[Number] = None


class TrainingSession(CamelModel):
    date: Optional[Any] = None
    games_played: Number = 0
    total_time: Number = 0
    lpi_change: Number = 0
    session_type: Optional[Any] = None
    games_details: List[SessionGame] = Field(default_factory=list)


class TrainingHistory(CamelModel):
    total_sessions: Number = 0
    total_time_minutes: Number = 0
    average_session_time: Number = 0
    total_games_played: Number = 0
    recent_sessions: List[TrainingSession] = Field(default_factory=list)


class ProgressPoint(CamelModel):
    date: Optional[Any] = None
    lpi: Optional[Number] = None
    score: Optional[Number] = None
    percentile: Optional[Number] = None
    play_number: Optional[Number] = None


class GameProgress(CamelModel):
    game_slug: Optional[str] = None
    game_name: Optional[str] = None
    area_slug: Optional[str] = None
    area_name: Optional[str] = None
    progress_data: List[ProgressPoint] = Field(default_factory=list)


class DailyStats(CamelModel):
    """Activity rollups as reported by the app; shapes are passed through."""

    today: Optional[Any] = None
    yesterday: Optional[Any] = None
    this_week: Optional[Any] = None
    last_week: Optional[Any] = None
    this_month: Optional[Any] = None
    last_month: Optional[Any] = None


class EarnedAchievement(CamelModel):
    id: Optional[Any] = None
    name: Optional[Any] = None
    description: Optional[Any] = None
    earned_at: Optional[Any] = None
    category: Optional[Any] = None


class AvailableAchievement(CamelModel):
    id: Optional[Any] = None
    name: Optional[Any] = None
    description: Optional[Any] = None
    category: Optional[Any] = None
    progress: Optional[Any] = None


class Achievements(CamelModel):
    total: Number = 0
    earned: List[EarnedAchievement] = Field(default_factory=list)
    available: List[AvailableAchievement] = Field(default_factory=list)


class RelevantData(CamelModel):
    """Everything worth keeping from one account's session, reconciled."""

    user_info: Optional[UserInfo] = None
    lpi_summary: Optional[LpiSummary] = None
    streak_history: Optional[StreakHistory] = None
    detailed_streaks: Optional[List[StreakInterval]] = None
    fit_test_results: Optional[FitTestResults] = None
    game_rankings: Optional[List[GameRanking]] = None
    comparisons: Optional[Comparisons] = None
    most_improved_games: Optional[List[ImprovedGame]] = None
    training_history: Optional[TrainingHistory] = None
    game_progress_history: Optional[List[GameProgress]] = None
    daily_stats: Optional[DailyStats] = None
    achievements: Optional[Achievements] = None
