"""Failure handling for browser sessions - error types, timeout races and safe release."""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from .scraper_logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class ScraperError(Exception):
    """Base class for harvester errors."""


class AccountSourceError(ScraperError):
    """The account list is missing, unreadable or contains an invalid entry."""


class HarvestTimeoutError(ScraperError, TimeoutError):
    """An operation lost its race against a wall-clock budget."""

    def __init__(self, message: str, timeout_s: Optional[float] = None):
        super().__init__(message)
        self.timeout_s = timeout_s


class OverallTimeoutError(HarvestTimeoutError):
    """The whole harvest run exceeded its budget."""


class BrowserStartError(ScraperError):
    """Playwright or the shared Chromium instance failed to start."""


class ResultsWriteError(ScraperError):
    """The Results Set artifact could not be written."""


async def race_with_timeout(
    operation: Awaitable[T],
    timeout_s: float,
    message: str,
    error_cls: type = HarvestTimeoutError,
) -> T:
    """Race an awaitable against a timer.

    Whichever finishes first wins. When the timer wins the operation is
    cancelled, so any ``async with`` / ``finally`` blocks inside it still run
    and release their resources, and ``error_cls(message)`` is raised.

    Args:
        operation: Coroutine or future to run
        timeout_s: Budget in seconds
        message: Error message used when the budget is exceeded
        error_cls: HarvestTimeoutError subclass to raise

    Returns:
        The operation's result
    """
    try:
        return await asyncio.wait_for(operation, timeout=timeout_s)
    except HarvestTimeoutError:
        # An inner race already lost; keep its message
        raise
    except asyncio.TimeoutError as e:
        logger.warning("Operation timed out", timeout_s=timeout_s, reason=message)
        raise error_cls(message, timeout_s) from e


async def close_quietly(
    close: Callable[[], Awaitable[None]],
    *,
    what: str,
    timeout_s: float = 10.0,
) -> bool:
    """Best-effort close of a resource.

    Errors (including a hung close) are logged and swallowed so that release
    never masks the outcome of the operation that owned the resource.

    Returns:
        True if the resource closed cleanly
    """
    try:
        await asyncio.wait_for(close(), timeout=timeout_s)
        return True
    except asyncio.TimeoutError:
        logger.error("Timed out closing resource", resource=what, timeout_s=timeout_s)
    except Exception as e:
        logger.error("Failed to close resource", resource=what, error=str(e))
    return False
