"""Session Harvester: one isolated browser session per account.

Logs in, walks the stats pages so the web app fires its API calls, and turns
the captured responses into the account's report. Every failure inside a
session becomes a FailedAccountReport; only cancellation propagates.
"""

import asyncio
import time
from typing import Any, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import AppSettings, get_settings
from ..extractors.responses import extract_relevant_data
from ..models.accounts import Account
from ..models.report import HarvestResult
from ..scraper_logging import MetricsCollector, get_logger
from ..transformers.stats import failure_report, format_account_report

logger = get_logger(__name__)

DUMMY_EMAIL_SELECTOR = "input#email-dummy"
EMAIL_SELECTOR = "input#email"
PASSWORD_SELECTOR = "input#password"

# Clicks the first button labelled "log in" or of type submit; returns whether one was found
SUBMIT_LOGIN_SCRIPT = """
() => {
    const buttons = Array.from(document.querySelectorAll('button'));
    const button = buttons.find(btn =>
        (btn.innerText || '').toLowerCase().includes('log in') || btn.type === 'submit'
    );
    if (!button) {
        return false;
    }
    button.click();
    return true;
}
"""


class SessionHarvester:
    """Harvests one account at a time from a shared BrowserPool."""

    def __init__(
        self,
        pool: Any,
        settings: Optional[AppSettings] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.pool = pool
        self.settings = settings or get_settings()
        self.metrics = metrics or MetricsCollector()

    async def harvest(self, account: Account, *, position: int = 0, batch_index: int = 0) -> HarvestResult:
        """Harvest one account.

        Args:
            account: Account to log in with
            position: 1-based position of the account in the run
            batch_index: 1-based batch the account belongs to

        Returns:
            AccountReport on success, FailedAccountReport otherwise
        """
        log = logger.bind(identity=account.identity, batch=batch_index, position=position)
        log.info("Processing account")
        start = time.monotonic()

        try:
            async with self.pool.session(identity=account.identity) as session:
                await self._login(session.page, account, log)
                await self._visit_pages(session.page, log)
                responses = await session.collect_responses()

            log.info("Processing captured responses", responses=len(responses))
            data = extract_relevant_data(
                responses,
                default_age_cohort=self.settings.DEFAULT_AGE_COHORT,
                tz_name=self.settings.TIMEZONE,
                metrics=self.metrics,
            )
            report = format_account_report(data, account, tz_name=self.settings.TIMEZONE)
        except asyncio.CancelledError:
            log.warning("Harvest cancelled", duration_s=round(time.monotonic() - start, 1))
            raise
        except Exception as e:
            duration = time.monotonic() - start
            log.error("Harvest failed", error=str(e), error_type=type(e).__name__,
                      duration_s=round(duration, 1))
            self.metrics.increment("harvest.failure")
            self.metrics.timer("harvest.duration", duration, tags={"outcome": "failure"})
            return failure_report(account, e)

        duration = time.monotonic() - start
        log.info("Harvest completed", duration_s=round(duration, 1))
        self.metrics.increment("harvest.success")
        self.metrics.timer("harvest.duration", duration, tags={"outcome": "success"})
        return report

    async def _open_login_page(self, page: Any, log: Any) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.NAVIGATION_RETRIES),
            wait=wait_exponential(multiplier=1, min=1, max=5),
            retry=retry_if_exception_type(PlaywrightTimeoutError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    log.warning("Retrying login page", attempt=attempt.retry_state.attempt_number)
                await page.goto(
                    self.settings.login_url,
                    wait_until="domcontentloaded",
                    timeout=self.settings.NAVIGATION_TIMEOUT_S * 1000,
                )

    async def _login(self, page: Any, account: Account, log: Any) -> None:
        """Fill and submit the login form.

        The form starts with a placeholder e-mail input; typing into it
        reveals the real one on some variants of the page.
        """
        selector_ms = self.settings.SELECTOR_TIMEOUT_S * 1000
        delay = self.settings.TYPING_DELAY_MS

        log.info("Navigating to login")
        await self._open_login_page(page, log)

        await page.wait_for_selector(DUMMY_EMAIL_SELECTOR, timeout=selector_ms)
        await page.click(DUMMY_EMAIL_SELECTOR)
        await page.keyboard.type(account.identity, delay=delay)

        try:
            await page.wait_for_selector(
                EMAIL_SELECTOR, timeout=self.settings.OPTIONAL_SELECTOR_TIMEOUT_S * 1000
            )
            await page.fill(EMAIL_SELECTOR, "")
            await page.type(EMAIL_SELECTOR, account.identity, delay=delay)
        except PlaywrightTimeoutError:
            log.debug("Real e-mail input not present")

        await page.wait_for_selector(PASSWORD_SELECTOR, timeout=selector_ms)
        await page.click(PASSWORD_SELECTOR)
        await page.type(PASSWORD_SELECTOR, account.secret, delay=delay)

        log.info("Submitting login")
        try:
            async with page.expect_navigation(
                wait_until="domcontentloaded",
                timeout=self.settings.NAVIGATION_TIMEOUT_S * 1000,
            ):
                clicked = await page.evaluate(SUBMIT_LOGIN_SCRIPT)
                if not clicked:
                    log.warning("Login button not found")
        except PlaywrightTimeoutError:
            # Single-page logins may not navigate at all
            log.warning("No navigation after login submit")

    async def _visit_pages(self, page: Any, log: Any) -> None:
        for url, settle_s in self.settings.page_urls():
            try:
                log.info("Loading page", url=url)
                await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=self.settings.NAVIGATION_TIMEOUT_S * 1000,
                )
                await asyncio.sleep(settle_s)
            except Exception as e:
                log.warning("Could not load page", url=url, error=str(e))

        log.debug("Final wait for trailing API calls", settle_s=self.settings.LOGIN_SETTLE_S)
        await asyncio.sleep(self.settings.LOGIN_SETTLE_S)
