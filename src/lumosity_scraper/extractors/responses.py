"""Response Relevance Extractor: folds captured API responses into RelevantData.

Responses are processed in capture order. Each one can contribute to any
section; how a later contribution interacts with an earlier one depends on
the section:

    userInfo, LPI summary scalars, streakHistory  last write wins
    lpisByArea, gameRankings, mostImprovedGames,
    detailedStreaks, gameProgressHistory          replaced only by a longer list
    comparisons                                   see _merge_comparisons
    fitTest, trainingHistory, dailyStats,
    achievements                                  first seen wins

A failure while building one section of one response is logged and skipped;
the remaining sections and responses are still processed.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Sized

from ..models.relevant import (
    Achievements,
    AreaLpi,
    AreaPercentile,
    AvailableAchievement,
    CapturedResponse,
    Comparisons,
    DailyStats,
    EarnedAchievement,
    FitTestGamePlay,
    FitTestPercentile,
    FitTestResults,
    GameProgress,
    GameRanking,
    ImprovedGame,
    LpiSummary,
    ProgressPoint,
    RelevantData,
    SessionGame,
    StreakHistory,
    StreakInterval,
    TrainingDay,
    TrainingHistory,
    TrainingSession,
    UserInfo,
)
from ..scraper_logging import MetricsCollector, get_logger
from ..utils.coerce import (
    as_dict,
    as_list,
    dicts,
    dig,
    gap_or_zero,
    to_bool,
    to_bool_or_none,
    to_int_or_zero,
    to_number_or_none,
    to_number_or_zero,
    to_str_or_none,
)
from ..utils.dates import parse_day

logger = get_logger(__name__)

DEFAULT_AGE_COHORT = "20-24"
# Keys that make a response worth capturing; only `me` is read as the account's profile
PROFILE_KEYS = ("me", "user")


def is_relevant_payload(body: Any) -> bool:
    """True for a JSON body whose ``data`` carries the user's profile."""
    data = dig(body, "data")
    return isinstance(data, dict) and any(key in data for key in PROFILE_KEYS)


def _profile(data: Dict[str, Any]) -> Dict[str, Any]:
    return as_dict(data.get("me"))


def _longer(candidate: Sized, current: Optional[Sized]) -> bool:
    return current is None or len(candidate) > len(current)


# ---------------------------------------------------------------------------
# Section builders. Each takes the raw profile mapping and returns a model.
# ---------------------------------------------------------------------------

def build_user_info(me: Dict[str, Any]) -> Optional[UserInfo]:
    """User info is only trusted when the payload identifies the user."""
    if not me.get("id") or not me.get("firstName"):
        return None
    return UserInfo(
        id=to_str_or_none(me.get("id")),
        first_name=to_str_or_none(me.get("firstName")),
        last_name=to_str_or_none(me.get("lastName")) or "",
        email=to_str_or_none(me.get("email")),
        age_cohort=to_str_or_none(me.get("ageCohort")),
        has_premium=to_bool_or_none(me.get("hasPremium")),
        member_since=me.get("memberSince"),
        timezone=to_str_or_none(me.get("timezone")),
        profile_picture=me.get("profilePicture"),
        account_type=me.get("accountType"),
    )


def build_area_lpis(raw_areas: List[Any]) -> List[AreaLpi]:
    areas = []
    for area in dicts(raw_areas):
        slug = to_str_or_none(area.get("areaSlug"))
        areas.append(AreaLpi(
            area_slug=slug,
            area_name=to_str_or_none(area.get("areaName")) or slug,
            lpi=to_number_or_none(area.get("lpi")),
            first_lpi=to_number_or_none(area.get("firstLpi")),
            best_lpi=to_number_or_none(area.get("bestLpi")),
            updated_at=area.get("updatedAt"),
            play_count=to_number_or_none(area.get("playCount")),
            average_score=to_number_or_none(area.get("averageScore")),
        ))
    return areas


def _game_fields(entry: Dict[str, Any]) -> Dict[str, Any]:
    game = as_dict(entry.get("game"))
    slug = to_str_or_none(game.get("slug"))
    area_slug = to_str_or_none(game.get("areaSlug"))
    return {
        "game_slug": slug,
        "game_name": to_str_or_none(game.get("name")) or slug,
        "area_slug": area_slug,
        "area_name": to_str_or_none(game.get("areaName")) or area_slug,
    }


def build_game_rankings(raw_games: List[Any]) -> List[GameRanking]:
    """Games with a positive LPI, highest first (stable for ties)."""
    rankings = []
    for entry in dicts(raw_games):
        lpi = to_number_or_none(entry.get("lpi"))
        if lpi is None or lpi <= 0:
            continue
        rankings.append(GameRanking(
            **_game_fields(entry),
            lpi=lpi,
            first_lpi=to_number_or_none(entry.get("firstLpi")),
            best_lpi=to_number_or_none(entry.get("bestLpi")),
            play_count=to_number_or_zero(entry.get("playCount")),
            last_played_at=entry.get("lastPlayedAt"),
            average_score=to_number_or_none(entry.get("averageScore")),
            best_score=to_number_or_none(entry.get("bestScore")),
            first_score=to_number_or_none(entry.get("firstScore")),
            recent_scores=as_list(entry.get("recentScores")),
            improvement=gap_or_zero(entry.get("bestLpi"), entry.get("firstLpi")),
        ))
    return sorted(rankings, key=lambda g: g.lpi, reverse=True)


def build_most_improved(raw_games: List[Any]) -> List[ImprovedGame]:
    """Games with a positive LPI increase, largest increase first."""
    improved = []
    for entry in dicts(raw_games):
        increase = to_number_or_none(entry.get("lpiIncrease"))
        if increase is None or increase <= 0:
            continue
        improved.append(ImprovedGame(
            **_game_fields(entry),
            lpi_increase=increase,
            percent_increase=to_number_or_none(entry.get("percentIncrease")),
            bucket=entry.get("bucket"),
            play_count=to_number_or_zero(entry.get("playCount")),
            first_lpi=to_number_or_none(entry.get("firstLpi")),
            current_lpi=to_number_or_none(entry.get("currentLpi")),
        ))
    return sorted(improved, key=lambda g: g.lpi_increase, reverse=True)


def build_comparisons(cohorts: List[Any], age_cohort: str) -> Optional[Comparisons]:
    """Standing within the cohort whose slug matches ``age_cohort``."""
    match = next((c for c in dicts(cohorts) if c.get("ageCohortSlug") == age_cohort), None)
    if match is None:
        return None

    by_area = []
    for area in dicts(match.get("percentileByArea")):
        slug = to_str_or_none(area.get("areaSlug"))
        by_area.append(AreaPercentile(
            area_slug=slug,
            area_name=to_str_or_none(area.get("areaName")) or slug,
            percentile=to_number_or_none(area.get("percentile")),
            best_percentile=to_number_or_none(area.get("bestPercentile")),
        ))

    return Comparisons(
        age_cohort=age_cohort,
        overall_percentile=to_number_or_none(match.get("overallPercentile")),
        best_overall_percentile=to_number_or_none(match.get("bestOverallPercentile")),
        percentile_by_area=by_area,
        total_users=to_number_or_none(match.get("totalUsers")),
        rank=to_number_or_none(match.get("rank")),
        best_rank=to_number_or_none(match.get("bestRank")),
    )


def build_streak_interval(streak: Any, tz_name: Optional[str] = None) -> Optional[StreakInterval]:
    if not isinstance(streak, dict):
        return None
    days = [
        TrainingDay(
            date=day.get("date"),
            games_played=to_number_or_zero(day.get("gamesPlayed")),
            total_time=to_number_or_zero(day.get("totalTime")),
            lpi_gained=to_number_or_zero(day.get("lpiGained")),
            session_count=to_number_or_zero(day.get("sessionCount")),
            games_summary=as_list(day.get("gamesSummary")),
        )
        for day in dicts(streak.get("trainingDays"))
    ]
    length = to_number_or_none(streak.get("length"))
    return StreakInterval(
        start_date=parse_day(streak.get("startDate"), tz_name),
        end_date=parse_day(streak.get("endDate"), tz_name),
        length=int(length) if length is not None else None,
        is_active=to_bool(streak.get("isActive")),
        training_days=days,
    )


def build_streak_intervals(raw_streaks: List[Any], tz_name: Optional[str] = None) -> List[StreakInterval]:
    intervals = (build_streak_interval(raw, tz_name) for raw in raw_streaks)
    return [s for s in intervals if s is not None]


def build_streak_history(history: Dict[str, Any], tz_name: Optional[str] = None) -> StreakHistory:
    streaks = as_list(history.get("streaks"))
    return StreakHistory(
        current_streak=build_streak_interval(streaks[-1], tz_name) if streaks else None,
        best_streak=build_streak_interval(history.get("bestStreak"), tz_name),
        total_streaks=len(streaks),
        all_streaks=build_streak_intervals(streaks, tz_name),
        streak_days=to_number_or_zero(history.get("streakDays")),
        longest_streak_days=to_number_or_zero(history.get("longestStreakDays")),
    )


def build_fit_test(fit_test: Dict[str, Any]) -> FitTestResults:
    percentiles = []
    for p in dicts(fit_test.get("percentiles")):
        play = as_dict(p.get("gamePlay"))
        game_slug = to_str_or_none(p.get("gameSlug"))
        area_slug = to_str_or_none(p.get("areaSlug"))
        percentiles.append(FitTestPercentile(
            game_slug=game_slug,
            game_name=to_str_or_none(p.get("gameName")) or game_slug,
            area_slug=area_slug,
            area_name=to_str_or_none(p.get("areaName")) or area_slug,
            percentile=to_number_or_none(p.get("percentile")),
            score=to_number_or_none(p.get("score")),
            game_play=FitTestGamePlay(
                score=to_number_or_none(play.get("score")),
                lpi=to_number_or_none(play.get("lpi")),
                finished_at=play.get("finishedAt"),
                duration=to_number_or_none(play.get("duration")),
                accuracy=to_number_or_none(play.get("accuracy")),
            ),
        ))
    return FitTestResults(
        completed_at=fit_test.get("completedAt"),
        overall_score=to_number_or_none(fit_test.get("overallScore")),
        overall_percentile=to_number_or_none(fit_test.get("overallPercentile")),
        percentiles=percentiles,
    )


def build_training_history(history: Dict[str, Any]) -> TrainingHistory:
    sessions = []
    for session in dicts(history.get("recentSessions")):
        games = []
        for game in dicts(session.get("games")):
            slug = to_str_or_none(game.get("slug"))
            games.append(SessionGame(
                slug=slug,
                name=to_str_or_none(game.get("name")) or slug,
                score=to_number_or_none(game.get("score")),
                lpi=to_number_or_none(game.get("lpi")),
                time_spent=to_number_or_none(game.get("timeSpent")),
                accuracy=to_number_or_none(game.get("accuracy")),
            ))
        sessions.append(TrainingSession(
            date=session.get("date"),
            games_played=to_number_or_zero(session.get("gamesPlayed")),
            total_time=to_number_or_zero(session.get("totalTime")),
            lpi_change=to_number_or_zero(session.get("lpiChange")),
            session_type=session.get("sessionType"),
            games_details=games,
        ))
    return TrainingHistory(
        total_sessions=to_number_or_zero(history.get("totalSessions")),
        total_time_minutes=to_number_or_zero(history.get("totalTimeMinutes")),
        average_session_time=to_number_or_zero(history.get("averageSessionTime")),
        total_games_played=to_number_or_zero(history.get("totalGamesPlayed")),
        recent_sessions=sessions,
    )


def build_game_progress(raw_games: List[Any]) -> List[GameProgress]:
    progress = []
    for game in dicts(raw_games):
        game_slug = to_str_or_none(game.get("gameSlug"))
        area_slug = to_str_or_none(game.get("areaSlug"))
        progress.append(GameProgress(
            game_slug=game_slug,
            game_name=to_str_or_none(game.get("gameName")) or game_slug,
            area_slug=area_slug,
            area_name=to_str_or_none(game.get("areaName")) or area_slug,
            progress_data=[
                ProgressPoint(
                    date=point.get("date"),
                    lpi=to_number_or_none(point.get("lpi")),
                    score=to_number_or_none(point.get("score")),
                    percentile=to_number_or_none(point.get("percentile")),
                    play_number=to_number_or_none(point.get("playNumber")),
                )
                for point in dicts(game.get("progressData"))
            ],
        ))
    return progress


def build_daily_stats(stats: Dict[str, Any]) -> DailyStats:
    return DailyStats(
        today=stats.get("today"),
        yesterday=stats.get("yesterday"),
        this_week=stats.get("thisWeek"),
        last_week=stats.get("lastWeek"),
        this_month=stats.get("thisMonth"),
        last_month=stats.get("lastMonth"),
    )


def build_achievements(achievements: Dict[str, Any]) -> Achievements:
    return Achievements(
        total=to_int_or_zero(achievements.get("total")),
        earned=[
            EarnedAchievement(
                id=a.get("id"),
                name=a.get("name"),
                description=a.get("description"),
                earned_at=a.get("earnedAt"),
                category=a.get("category"),
            )
            for a in dicts(achievements.get("earned"))
        ],
        available=[
            AvailableAchievement(
                id=a.get("id"),
                name=a.get("name"),
                description=a.get("description"),
                category=a.get("category"),
                progress=a.get("progress"),
            )
            for a in dicts(achievements.get("available"))
        ],
    )


# ---------------------------------------------------------------------------
# Merge steps. Each folds one response's contribution into the accumulator.
# ---------------------------------------------------------------------------

class _Accumulator:
    """Mutable state of the fold; frozen into RelevantData at the end."""

    def __init__(self):
        self.fields: Dict[str, Any] = {}
        self.lpi: Optional[Dict[str, Any]] = None

    def get(self, name: str) -> Any:
        return self.fields.get(name)

    def set(self, name: str, value: Any) -> None:
        self.fields[name] = value

    def freeze(self) -> RelevantData:
        fields = dict(self.fields)
        if self.lpi is not None:
            fields["lpi_summary"] = LpiSummary(**self.lpi)
        return RelevantData(**fields)


def _merge_user_info(acc: _Accumulator, me: Dict[str, Any], ctx: Dict[str, Any]) -> None:
    user_info = build_user_info(me)
    if user_info is not None:
        acc.set("user_info", user_info)


def _merge_lpi_summary(acc: _Accumulator, me: Dict[str, Any], ctx: Dict[str, Any]) -> None:
    summary = me.get("lpiSummary")
    if not isinstance(summary, dict):
        return
    if acc.lpi is None:
        acc.lpi = {}

    for key, field in (
        ("overallLpi", "overall_lpi"),
        ("bestOverallLpi", "best_overall_lpi"),
        ("firstOverallLpi", "first_overall_lpi"),
    ):
        if key in summary:
            acc.lpi[field] = to_number_or_none(summary[key])
    if "updatedAt" in summary:
        acc.lpi["updated_at"] = summary["updatedAt"]

    raw_areas = summary.get("lpisByArea")
    if isinstance(raw_areas, list) and _longer(raw_areas, acc.lpi.get("lpis_by_area")):
        acc.lpi["lpis_by_area"] = build_area_lpis(raw_areas)


def _merge_game_rankings(acc: _Accumulator, me: Dict[str, Any], ctx: Dict[str, Any]) -> None:
    raw_games = dig(me, "lpiSummary", "lpisByGame")
    if isinstance(raw_games, list) and _longer(raw_games, acc.get("game_rankings")):
        acc.set("game_rankings", build_game_rankings(raw_games))


def _merge_most_improved(acc: _Accumulator, me: Dict[str, Any], ctx: Dict[str, Any]) -> None:
    raw_games = dig(me, "lpiSummary", "mostImprovedGames")
    if isinstance(raw_games, list) and _longer(raw_games, acc.get("most_improved_games")):
        acc.set("most_improved_games", build_most_improved(raw_games))


def _merge_comparisons(acc: _Accumulator, me: Dict[str, Any], ctx: Dict[str, Any]) -> None:
    """Take a cohort list when nothing is held yet, or when it lists several cohorts.

    The entry for the user's own age cohort is selected; the default cohort
    stands in while the profile has not revealed one.
    """
    cohorts = dig(me, "lpiSummary", "ageCohortComparisons")
    if not isinstance(cohorts, list):
        return
    held = acc.get("comparisons")
    if len(cohorts) <= (1 if held is not None else 0):
        return

    user_info = acc.get("user_info")
    age_cohort = (user_info.age_cohort if user_info else None) or ctx["default_age_cohort"]
    comparisons = build_comparisons(cohorts, age_cohort)
    if comparisons is not None:
        acc.set("comparisons", comparisons)


def _merge_streaks(acc: _Accumulator, me: Dict[str, Any], ctx: Dict[str, Any]) -> None:
    history = me.get("streakHistory")
    if not isinstance(history, dict):
        return
    acc.set("streak_history", build_streak_history(history, ctx["tz_name"]))

    raw_streaks = as_list(history.get("streaks"))
    if raw_streaks and _longer(raw_streaks, acc.get("detailed_streaks")):
        acc.set("detailed_streaks", build_streak_intervals(raw_streaks, ctx["tz_name"]))


def _merge_game_progress(acc: _Accumulator, me: Dict[str, Any], ctx: Dict[str, Any]) -> None:
    raw_games = me.get("gameProgressHistory")
    if isinstance(raw_games, list) and _longer(raw_games, acc.get("game_progress_history")):
        acc.set("game_progress_history", build_game_progress(raw_games))


def _first_seen(field: str, key: str, builder: Callable[[Dict[str, Any]], Any]):
    def merge(acc: _Accumulator, me: Dict[str, Any], ctx: Dict[str, Any]) -> None:
        raw = me.get(key)
        if isinstance(raw, dict) and acc.get(field) is None:
            acc.set(field, builder(raw))
    merge.__name__ = f"_merge_{field}"
    return merge


# Order matters: user info lands before comparisons so the cohort is known
SECTIONS = (
    ("userInfo", _merge_user_info),
    ("lpiSummary", _merge_lpi_summary),
    ("gameRankings", _merge_game_rankings),
    ("mostImprovedGames", _merge_most_improved),
    ("comparisons", _merge_comparisons),
    ("streakHistory", _merge_streaks),
    ("fitTestResults", _first_seen("fit_test_results", "fitTest", build_fit_test)),
    ("trainingHistory", _first_seen("training_history", "trainingHistory", build_training_history)),
    ("gameProgressHistory", _merge_game_progress),
    ("dailyStats", _first_seen("daily_stats", "dailyStats", build_daily_stats)),
    ("achievements", _first_seen("achievements", "achievements", build_achievements)),
)


def extract_relevant_data(
    responses: Iterable[CapturedResponse],
    *,
    default_age_cohort: str = DEFAULT_AGE_COHORT,
    tz_name: Optional[str] = None,
    metrics: Optional[MetricsCollector] = None,
) -> RelevantData:
    """Fold captured responses, in capture order, into one RelevantData.

    Never raises on malformed input. An empty input yields a record with
    every field None.

    Args:
        responses: Captured responses in the order they arrived
        default_age_cohort: Cohort used for comparisons when the profile has none
        tz_name: Timezone that turns epoch streak dates into calendar days
        metrics: Optional sink for per-section error counts

    Returns:
        RelevantData: reconciled record
    """
    acc = _Accumulator()
    ctx = {"default_age_cohort": default_age_cohort, "tz_name": tz_name}
    count = 0

    for index, response in enumerate(responses):
        count += 1
        data = dig(response.body, "data")
        if not isinstance(data, dict):
            continue
        me = _profile(data)
        if not me:
            continue

        for section, merge in SECTIONS:
            try:
                merge(acc, me, ctx)
            except Exception as e:
                logger.warning("Failed to extract section",
                               section=section, response_index=index,
                               source_url=response.source_url, error=str(e))
                if metrics:
                    metrics.increment("extractor.section_errors", tags={"section": section})

    logger.debug("Extracted relevant data", responses=count,
                 sections=sorted(acc.fields) + (["lpi_summary"] if acc.lpi is not None else []))
    return acc.freeze()
