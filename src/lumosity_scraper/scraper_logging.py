"""Structured logging and in-memory metrics for the harvester."""

import logging
import sys
import threading
import uuid
from collections import defaultdict, deque
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from structlog.stdlib import LoggerFactory

from .config import AppSettings, get_settings

# Context variable carrying the id of the harvest run in progress
run_id_var: ContextVar[Optional[str]] = ContextVar("run_id", default=None)


class MetricsCollector:
    """Thread-safe in-memory metrics collector.

    One instance is created per run and handed to the components that emit
    events, so tests can inspect exactly what a run recorded.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._gauges: Dict[str, float] = {}
        self._timers: Dict[str, deque] = defaultdict(lambda: deque(maxlen=1000))

    def increment(self, metric_name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        """Increment a counter metric."""
        with self._lock:
            key = self._format_metric_key(metric_name, tags)
            self._counters[key] += value

    def gauge(self, metric_name: str, value: float, tags: Optional[Dict[str, str]] = None):
        """Set a gauge metric."""
        with self._lock:
            key = self._format_metric_key(metric_name, tags)
            self._gauges[key] = value

    def timer(self, metric_name: str, duration: float, tags: Optional[Dict[str, str]] = None):
        """Record a timing metric."""
        with self._lock:
            key = self._format_metric_key(metric_name, tags)
            self._timers[key].append(duration)

    def counter(self, metric_name: str, tags: Optional[Dict[str, str]] = None) -> int:
        with self._lock:
            return self._counters.get(self._format_metric_key(metric_name, tags), 0)

    def get_metrics(self) -> Dict[str, Any]:
        """Get all collected metrics."""
        with self._lock:
            return {
                'counters': dict(self._counters),
                'gauges': dict(self._gauges),
                'timers': {k: list(v) for k, v in self._timers.items()}
            }

    def _format_metric_key(self, metric_name: str, tags: Optional[Dict[str, str]]) -> str:
        """Format metric key with tags."""
        if not tags:
            return metric_name
        tag_string = ','.join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{metric_name},{tag_string}"


def get_run_id() -> str:
    """Get or generate the id of the current harvest run."""
    run_id = run_id_var.get()
    if run_id is None:
        run_id = str(uuid.uuid4())[:8]
        run_id_var.set(run_id)
    return run_id


def set_run_id(run_id: str) -> None:
    """Set the run id for the current context."""
    run_id_var.set(run_id)


def add_run_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Stamp every log event with the run id."""
    event_dict["run_id"] = get_run_id()
    return event_dict


def configure_logging(settings: Optional[AppSettings] = None) -> None:
    """Configure structured logging for the CLI and long-running jobs."""
    settings = settings or get_settings()

    processors = [
        structlog.contextvars.merge_contextvars,
        add_run_id,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    elif settings.LOG_FORMAT == "structured":
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.LOG_LEVEL)
    handlers: list = [logging.StreamHandler(sys.stdout)]

    if settings.LOG_FILE:
        from logging.handlers import RotatingFileHandler

        settings.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.LOG_FILE,
            maxBytes=_parse_size(settings.LOG_MAX_SIZE),
            backupCount=settings.LOG_BACKUP_COUNT
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, format="%(message)s", force=True)

    # Silence noisy third-party loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("playwright").setLevel(logging.WARNING)


def _parse_size(size_str: str) -> int:
    """Parse size string like '100MB' into bytes."""
    size_str = size_str.upper()
    if size_str.endswith('KB'):
        return int(size_str[:-2]) * 1024
    elif size_str.endswith('MB'):
        return int(size_str[:-2]) * 1024 * 1024
    elif size_str.endswith('GB'):
        return int(size_str[:-2]) * 1024 * 1024 * 1024
    else:
        return int(size_str)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
