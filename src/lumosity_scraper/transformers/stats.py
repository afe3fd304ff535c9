"""Stats Normalizer: turns RelevantData into the AccountReport output shape."""

import math
from datetime import datetime
from typing import Any, Dict, Optional

from ..models.accounts import Account
from ..models.relevant import RelevantData
from ..models.report import (
    NOT_AVAILABLE,
    UNKNOWN,
    AccountInfo,
    AccountReport,
    AreaPercentileView,
    AreaScore,
    Comparison,
    FailedAccountReport,
    ImprovedEntry,
    LpiBlock,
    MonthInfo,
    Percentiles,
    Rankings,
    StreaksBlock,
    Summary,
    TopGame,
    Training,
)
from ..utils.coerce import gap_or_zero
from ..utils.dates import local_now, month_name, utc_timestamp
from .streaks import MonthlyStreakCalendar, build_monthly_streaks

TOP_GAMES_LIMIT = 10
MOST_IMPROVED_LIMIT = 5


def _or_na(value: Any) -> Any:
    return NOT_AVAILABLE if value is None else value


def _percent_text(value: Any) -> str:
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}%"


def completion_rate(days_played: int, days_missed: int) -> str:
    """Share of elapsed days with activity, as a half-up rounded percentage."""
    elapsed = days_played + days_missed
    if elapsed == 0:
        return "0%"
    return f"{math.floor(days_played / elapsed * 100 + 0.5)}%"


def build_account_info(account: Account, moment: Optional[datetime] = None) -> AccountInfo:
    return AccountInfo(
        identity=account.identity,
        cohort_label=account.cohort_label,
        extracted_at=utc_timestamp(moment),
    )


def _month_info(calendar: MonthlyStreakCalendar, now: datetime) -> MonthInfo:
    days = list(calendar.values())
    days_played = sum(1 for d in days if d is True)
    days_missed = sum(1 for d in days if d is False)
    return MonthInfo(
        year=now.year,
        month=now.month,
        month_name=month_name(now.month),
        today=now.day,
        days_in_month=len(calendar),
        days_played=days_played,
        days_missed=days_missed,
        future_days=sum(1 for d in days if d is None),
        completion_rate=completion_rate(days_played, days_missed),
    )


def _summary(data: RelevantData) -> Summary:
    user = data.user_info
    if user is None:
        return Summary()
    return Summary(
        user=user.first_name or UNKNOWN,
        full_name=f"{user.first_name or ''} {user.last_name or ''}".strip(),
        premium=bool(user.has_premium),
        age_cohort=user.age_cohort or UNKNOWN,
        member_since=user.member_since,
        account_type=user.account_type,
    )


def _lpi(data: RelevantData) -> LpiBlock:
    summary = data.lpi_summary
    if summary is None:
        return LpiBlock()

    by_area: Dict[str, AreaScore] = {}
    for area in summary.lpis_by_area or []:
        if area.lpi is None or area.area_slug is None:
            continue
        by_area[area.area_slug] = AreaScore(
            name=area.area_name,
            current=area.lpi,
            first=area.first_lpi,
            best=area.best_lpi,
            play_count=area.play_count,
            improvement=gap_or_zero(area.best_lpi, area.first_lpi),
        )

    return LpiBlock(
        overall=_or_na(summary.overall_lpi),
        best=_or_na(summary.best_overall_lpi),
        first=_or_na(summary.first_overall_lpi),
        by_area=by_area,
    )


def _rankings(data: RelevantData) -> Rankings:
    top_games = [
        TopGame(
            rank=i + 1,
            game=game.game_slug,
            name=game.game_name,
            area=game.area_slug,
            area_name=game.area_name,
            lpi=game.lpi,
            first_lpi=game.first_lpi,
            best_lpi=game.best_lpi,
            play_count=game.play_count,
            improvement=game.improvement,
            last_played_at=game.last_played_at,
        )
        for i, game in enumerate((data.game_rankings or [])[:TOP_GAMES_LIMIT])
    ]
    most_improved = [
        ImprovedEntry(
            rank=i + 1,
            game=game.game_slug,
            name=game.game_name,
            area=game.area_slug,
            area_name=game.area_name,
            improvement=game.lpi_increase,
            percent_increase=game.percent_increase,
            play_count=game.play_count,
        )
        for i, game in enumerate((data.most_improved_games or [])[:MOST_IMPROVED_LIMIT])
    ]
    return Rankings(top_games=top_games, most_improved=most_improved)


def _streaks(data: RelevantData, now: datetime) -> StreaksBlock:
    calendar = build_monthly_streaks(data.detailed_streaks, now.year, now.month, today=now.date())
    history = data.streak_history
    current = history.current_streak if history else None
    best = history.best_streak if history else None
    return StreaksBlock(
        current=(current.length if current else None) or 0,
        best=(best.length if best else None) or 0,
        total=history.total_streaks if history else 0,
        monthly_streaks=calendar,
        month_info=_month_info(calendar, now),
    )


def _percentiles(data: RelevantData) -> Percentiles:
    comparisons = data.comparisons
    if comparisons is None:
        return Percentiles()

    by_area: Dict[str, AreaPercentileView] = {}
    for area in comparisons.percentile_by_area:
        if area.area_slug is None or not area.percentile or area.percentile <= 0:
            continue
        by_area[area.area_slug] = AreaPercentileView(
            name=area.area_name,
            current=_percent_text(area.percentile),
            best=_percent_text(area.best_percentile),
        )

    return Percentiles(
        overall=_or_na(comparisons.overall_percentile),
        best=_or_na(comparisons.best_overall_percentile),
        by_area=by_area,
    )


def _training(data: RelevantData) -> Training:
    history = data.training_history
    if history is None:
        return Training()
    return Training(
        total_sessions=history.total_sessions,
        total_time_minutes=history.total_time_minutes,
        average_session_time=history.average_session_time,
        total_games_played=history.total_games_played,
        recent_sessions=history.recent_sessions,
    )


def _comparison(data: RelevantData) -> Comparison:
    comparisons = data.comparisons
    if comparisons is None:
        return Comparison()
    return Comparison(
        age_cohort=_or_na(comparisons.age_cohort),
        rank=_or_na(comparisons.rank),
        best_rank=_or_na(comparisons.best_rank),
        total_users=_or_na(comparisons.total_users),
    )


def format_account_report(
    data: RelevantData,
    account: Account,
    now: Optional[datetime] = None,
    *,
    tz_name: Optional[str] = None,
) -> AccountReport:
    """Normalize one account's RelevantData into its report.

    The monthly calendar covers the month of ``now``, and days after
    ``now``'s date are reported as not yet occurred.

    Args:
        data: Reconciled data of the session
        account: Account the data belongs to
        now: Reference moment (current time in ``tz_name`` when None)
        tz_name: IANA timezone that defines the current day

    Returns:
        AccountReport: success report
    """
    now = now or local_now(tz_name)
    return AccountReport(
        account_info=build_account_info(account, now),
        summary=_summary(data),
        lpi=_lpi(data),
        rankings=_rankings(data),
        streaks=_streaks(data, now),
        percentiles=_percentiles(data),
        training=_training(data),
        fit_test=data.fit_test_results,
        game_progress=data.game_progress_history or [],
        daily_stats=data.daily_stats,
        achievements=data.achievements,
        comparison=_comparison(data),
    )


def failure_report(account: Account, error: Any, now: Optional[datetime] = None) -> FailedAccountReport:
    """Failure placeholder for an account that could not be harvested."""
    message = str(error) or type(error).__name__
    return FailedAccountReport(account_info=build_account_info(account, now), error=message)
