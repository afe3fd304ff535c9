"""Test configuration and fixtures for the Lumosity harvester test suite."""

import os
import sys
import pathlib

# Force test-safe defaults before any other imports
os.environ.setdefault('ENV', 'TEST')
os.environ.setdefault('LOG_LEVEL', 'WARNING')
os.environ.setdefault('HEADLESS', 'true')

# Ensure tests can import from src/
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from datetime import datetime, timezone

import pytest

from lumosity_scraper.config import AppSettings, PageVisit
from lumosity_scraper.models.accounts import Account


@pytest.fixture
def settings(tmp_path):
    """Settings with no waits and all files under a temporary directory."""
    return AppSettings(
        ENV='TEST',
        ACCOUNTS_PATH=tmp_path / "accounts.json",
        RESULTS_PATH=tmp_path / "results.json",
        DAILY_REPORTS_PATH=tmp_path / "daily_reports.json",
        BASE_URL="https://app.example.test",
        PAGES_TO_VISIT=[
            PageVisit(path="/stats", settle_s=0),
            PageVisit(path="/profile", settle_s=0),
        ],
        LOGIN_SETTLE_S=0,
        BATCH_PAUSE_S=0,
        TYPING_DELAY_MS=0,
        NAVIGATION_RETRIES=1,
        TIMEZONE="UTC",
    )


@pytest.fixture
def account():
    return Account(identity="ada@example.com", secret="s3cret", cohort_label="study-a")


@pytest.fixture
def accounts():
    return [
        Account(identity="a@example.com", secret="pw-a", cohort_label="study-a"),
        Account(identity="b@example.com", secret="pw-b", cohort_label="study-a"),
        Account(identity="c@example.com", secret="pw-c", cohort_label="study-b"),
    ]


@pytest.fixture
def fixed_now():
    """Mid-March 2024, used wherever "today" matters."""
    return datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def today(fixed_now):
    return fixed_now.date()


@pytest.fixture
def sample_profile():
    """A realistic ``me`` payload touching every extracted section."""
    return {
        "id": "u-1",
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@example.com",
        "ageCohort": "30-34",
        "hasPremium": True,
        "memberSince": "2021-06-01",
        "lpiSummary": {
            "overallLpi": 1200,
            "bestOverallLpi": 1300,
            "firstOverallLpi": 900,
            "updatedAt": "2024-03-14T08:00:00Z",
            "lpisByArea": [
                {"areaSlug": "speed", "areaName": "Speed", "lpi": 1100, "firstLpi": 800, "bestLpi": 1150, "playCount": 12},
                {"areaSlug": "memory", "lpi": 950, "firstLpi": 900, "bestLpi": 1000, "playCount": 7},
                {"areaSlug": "math", "lpi": None},
            ],
            "lpisByGame": [
                {"game": {"slug": "speed-match", "name": "Speed Match", "areaSlug": "speed"}, "lpi": 1000, "firstLpi": 700, "bestLpi": 1050, "playCount": 4},
                {"game": {"slug": "memory-matrix", "areaSlug": "memory"}, "lpi": 1300, "firstLpi": 1000, "bestLpi": 1350},
                {"game": {"slug": "untouched"}, "lpi": 0},
            ],
            "mostImprovedGames": [
                {"game": {"slug": "speed-match", "name": "Speed Match"}, "lpiIncrease": 50, "percentIncrease": 5.2},
                {"game": {"slug": "memory-matrix"}, "lpiIncrease": 300, "percentIncrease": 30},
                {"game": {"slug": "flat"}, "lpiIncrease": 0},
            ],
            "ageCohortComparisons": [
                {"ageCohortSlug": "20-24", "overallPercentile": 50},
                {
                    "ageCohortSlug": "30-34",
                    "overallPercentile": 85,
                    "bestOverallPercentile": 90,
                    "totalUsers": 10000,
                    "rank": 1500,
                    "bestRank": 1000,
                    "percentileByArea": [
                        {"areaSlug": "speed", "areaName": "Speed", "percentile": 88, "bestPercentile": 91},
                        {"areaSlug": "memory", "percentile": 0, "bestPercentile": 10},
                    ],
                },
            ],
        },
        "streakHistory": {
            "streaks": [
                {"startDate": "2024-03-01", "endDate": "2024-03-03", "length": 3},
                {"startDate": "2024-03-10", "endDate": "2024-03-12", "length": 3, "isActive": True,
                 "trainingDays": [{"date": "2024-03-10", "gamesPlayed": 3}]},
            ],
            "bestStreak": {"startDate": "2024-01-01", "endDate": "2024-01-09", "length": 9},
            "streakDays": 6,
            "longestStreakDays": 9,
        },
        "trainingHistory": {
            "totalSessions": 40,
            "totalTimeMinutes": 400,
            "recentSessions": [{"date": "2024-03-12", "gamesPlayed": 3, "games": [{"slug": "speed-match", "score": 1200}]}],
        },
        "dailyStats": {"today": {"games": 3}, "thisWeek": {"games": 9}},
        "achievements": {"total": 2, "earned": [{"id": 1, "name": "First game"}]},
    }
