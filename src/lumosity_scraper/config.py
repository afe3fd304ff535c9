"""Configuration management for the Lumosity harvester with safe test defaults."""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""
    TEST = "TEST"
    DEV = "DEV"
    PROD = "PROD"


class PageVisit(BaseModel):
    """A page opened after login, with the settle time allowed for its API calls."""

    path: str
    settle_s: float = 3.0


DEFAULT_PAGES = [
    PageVisit(path="/stats", settle_s=5.0),
    PageVisit(path="/stats/training", settle_s=3.0),
    PageVisit(path="/stats/games", settle_s=3.0),
    PageVisit(path="/profile", settle_s=3.0),
]

DEFAULT_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-field-trial-config",
    "--disable-ipc-flooding-protection",
    "--no-first-run",
    "--no-default-browser-check",
    "--memory-pressure-off",
]


class AppSettings(BaseSettings):
    """Application settings with safe test defaults and dotenv support.

    Environment variables can be set directly or via .env file. List-valued
    settings (PAGES_TO_VISIT, BROWSER_ARGS) are read as JSON.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # ===================
    # Environment
    # ===================
    ENV: Environment = Field(
        default=Environment.TEST,
        description='Application environment: TEST, DEV, or PROD'
    )

    # ===================
    # Inputs & Outputs
    # ===================
    ACCOUNTS_PATH: Path = Field(
        default=Path('accounts.json'),
        description='JSON array of accounts to harvest'
    )
    RESULTS_PATH: Path = Field(
        default=Path('results.json'),
        description='Results Set artifact, overwritten after each run'
    )
    DAILY_REPORTS_PATH: Path = Field(
        default=Path('daily_reports.json'),
        description='JSON document store for dated daily report records'
    )

    # ===================
    # Target Site
    # ===================
    BASE_URL: str = Field(
        default='https://app.lumosity.com',
        description='Lumosity web app base URL'
    )
    PAGES_TO_VISIT: List[PageVisit] = Field(
        default_factory=lambda: list(DEFAULT_PAGES),
        description='Pages opened after login to trigger API traffic'
    )
    LOGIN_SETTLE_S: float = Field(
        default=2.0,
        description='Final wait after the last page for trailing API calls'
    )

    # ===================
    # Browser
    # ===================
    HEADLESS: bool = Field(default=True, description='Run Chromium headless')
    BROWSER_ARGS: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BROWSER_ARGS),
        description='Extra Chromium command line switches'
    )
    VIEWPORT_WIDTH: int = Field(default=1280, description='Session viewport width')
    VIEWPORT_HEIGHT: int = Field(default=720, description='Session viewport height')
    USER_AGENT: Optional[str] = Field(
        default=None,
        description='User agent override for sessions (browser default when unset)'
    )
    TYPING_DELAY_MS: float = Field(default=20.0, description='Delay between keystrokes')

    # ===================
    # Concurrency & Timeouts
    # ===================
    MAX_CONCURRENT_SESSIONS: int = Field(
        default=3,
        description='Maximum isolated browser sessions per batch'
    )
    ACCOUNT_TIMEOUT_S: float = Field(default=120.0, description='Per-account harvest budget')
    BATCH_TIMEOUT_S: float = Field(default=180.0, description='Per-batch slot budget')
    OVERALL_TIMEOUT_S: float = Field(default=720.0, description='Whole run budget')
    BATCH_PAUSE_S: float = Field(default=2.0, description='Pause between batches')
    NAVIGATION_TIMEOUT_S: float = Field(default=15.0, description='Page navigation timeout')
    SELECTOR_TIMEOUT_S: float = Field(default=10.0, description='Login form selector timeout')
    OPTIONAL_SELECTOR_TIMEOUT_S: float = Field(
        default=3.0,
        description='Wait for selectors that may legitimately be absent'
    )
    PAGE_DEFAULT_TIMEOUT_S: float = Field(default=30.0, description='Default page operation timeout')
    CLOSE_TIMEOUT_S: float = Field(default=10.0, description='Budget for closing a session')

    # ===================
    # Retry & Backoff
    # ===================
    NAVIGATION_RETRIES: int = Field(default=2, description='Attempts to open the login page')
    BROWSER_LAUNCH_RETRIES: int = Field(default=2, description='Attempts to launch Chromium')

    # ===================
    # Normalization
    # ===================
    DEFAULT_AGE_COHORT: str = Field(
        default='20-24',
        description='Age cohort used for comparisons when the profile has none'
    )
    TIMEZONE: Optional[str] = Field(
        default=None,
        description='IANA timezone that defines "today" (system local time when unset)'
    )

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = Field(default='INFO', description='Logging level')
    LOG_FORMAT: str = Field(default='json', description='Log format: json, text, or structured')
    LOG_FILE: Optional[Path] = Field(default=None, description='Log file path')
    LOG_MAX_SIZE: str = Field(default='10MB', description='Rotate log file at this size')
    LOG_BACKUP_COUNT: int = Field(default=5, description='Rotated log files to keep')

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(valid_levels)}")
        return v_upper

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in ('json', 'text', 'structured'):
            raise ValueError("LOG_FORMAT must be one of: json, text, structured")
        return v_lower

    @field_validator('ENV', mode='before')
    @classmethod
    def validate_env(cls, v) -> Environment:
        """Validate and normalize environment value."""
        if isinstance(v, Environment):
            return v
        if isinstance(v, str):
            v_upper = v.upper()
            # Map common variations to standard values
            if v_upper in ('TEST', 'TESTING'):
                return Environment.TEST
            elif v_upper in ('DEV', 'DEVELOPMENT', 'LOCAL'):
                return Environment.DEV
            elif v_upper in ('PROD', 'PRODUCTION'):
                return Environment.PROD
        raise ValueError(f"ENV must be TEST, DEV, or PROD (got: {v})")

    @field_validator(
        'MAX_CONCURRENT_SESSIONS',
        'ACCOUNT_TIMEOUT_S',
        'BATCH_TIMEOUT_S',
        'OVERALL_TIMEOUT_S',
        'NAVIGATION_TIMEOUT_S',
        'SELECTOR_TIMEOUT_S',
        'NAVIGATION_RETRIES',
        'BROWSER_LAUNCH_RETRIES',
    )
    @classmethod
    def validate_positive(cls, v):
        """Concurrency, timeouts and retry counts must be positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    def page_urls(self) -> List[tuple]:
        """Absolute URLs of the post-login pages with their settle times."""
        base = self.BASE_URL.rstrip('/')
        return [(f"{base}{page.path}", page.settle_s) for page in self.PAGES_TO_VISIT]

    @property
    def login_url(self) -> str:
        return f"{self.BASE_URL.rstrip('/')}/login"


@lru_cache()
def get_settings() -> AppSettings:
    """Get cached application settings.

    Loads settings from:
    1. Environment variables
    2. .env file (if exists)
    3. Default values

    Returns:
        AppSettings: Cached settings instance
    """
    return AppSettings()
