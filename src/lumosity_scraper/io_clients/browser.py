"""Playwright browser pool issuing isolated, response-recording sessions."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Sequence

from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route, async_playwright
from playwright.async_api import Error as PlaywrightError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import AppSettings, get_settings
from ..extractors.responses import is_relevant_payload
from ..models.relevant import CapturedResponse
from ..resilience import BrowserStartError, close_quietly
from ..scraper_logging import MetricsCollector, get_logger

logger = get_logger(__name__)

BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "stylesheet"})
CAPTURE_URL_MARKERS = ("gateway/graphql", "lumosity.com/api")


async def block_heavy_resources(route: Route) -> None:
    """Abort images, fonts and stylesheets; let everything else through."""
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class ResponseRecorder:
    """Records relevant JSON responses of a page in the order they arrive.

    ``on_response`` is a synchronous event handler: for every matching
    response it immediately schedules a body read, so the pending list is in
    arrival order even though bodies finish loading in any order.
    """

    def __init__(
        self,
        url_markers: Sequence[str] = CAPTURE_URL_MARKERS,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.url_markers = tuple(url_markers)
        self.metrics = metrics
        self._pending: List[asyncio.Task] = []

    def matches(self, url: str) -> bool:
        return any(marker in url for marker in self.url_markers)

    def on_response(self, response: Any) -> None:
        if not self.matches(response.url):
            return
        self._pending.append(asyncio.ensure_future(self._read(response)))

    async def _read(self, response: Any) -> Optional[CapturedResponse]:
        content_type = (response.headers or {}).get("content-type", "")
        if "application/json" not in content_type:
            return None
        try:
            body = await response.json()
        except Exception as e:
            # Redirects and aborted requests have no readable body
            logger.debug("Skipping unreadable response", url=response.url, error=str(e))
            return None
        if not is_relevant_payload(body):
            return None
        if self.metrics:
            self.metrics.increment("harvest.responses_captured")
        return CapturedResponse(source_url=response.url, body=body)

    async def collect(self) -> List[CapturedResponse]:
        """Wait for pending body reads and return the captures in arrival order."""
        captured: List[CapturedResponse] = []
        while self._pending:
            batch, self._pending = self._pending, []
            results = await asyncio.gather(*batch)
            captured.extend(r for r in results if r is not None)
        return captured

    def cancel(self) -> None:
        for task in self._pending:
            task.cancel()
        self._pending = []


class BrowserSession:
    """Handle on one isolated browser context and its single page."""

    def __init__(self, context: BrowserContext, page: Page, recorder: ResponseRecorder):
        self.context = context
        self.page = page
        self.recorder = recorder

    async def collect_responses(self) -> List[CapturedResponse]:
        return await self.recorder.collect()


class BrowserPool:
    """One shared Chromium instance used only to spawn isolated sessions.

    Usage:
        async with BrowserPool(settings) as pool:
            async with pool.session(identity="a@example.com") as session:
                await session.page.goto(...)
    """

    def __init__(self, settings: Optional[AppSettings] = None, metrics: Optional[MetricsCollector] = None):
        self.settings = settings or get_settings()
        self.metrics = metrics
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "BrowserPool":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Start Playwright and launch Chromium, retrying failed launches.

        Raises:
            BrowserStartError: Playwright or Chromium could not be started
        """
        if self._browser is not None:
            return
        try:
            self._playwright = await async_playwright().start()
        except PlaywrightError as e:
            raise BrowserStartError(f"Failed to start Playwright: {e}") from e

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.settings.BROWSER_LAUNCH_RETRIES),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type(PlaywrightError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning("Retrying browser launch",
                                       attempt=attempt.retry_state.attempt_number)
                    self._browser = await self._playwright.chromium.launch(
                        headless=self.settings.HEADLESS,
                        args=list(self.settings.BROWSER_ARGS),
                    )
        except PlaywrightError as e:
            await self._stop_playwright()
            raise BrowserStartError(f"Failed to launch browser: {e}") from e
        except BaseException:
            await self._stop_playwright()
            raise

        logger.info("Browser launched", headless=self.settings.HEADLESS)

    async def close(self) -> None:
        if self._browser is not None:
            await close_quietly(self._browser.close, what="browser",
                                timeout_s=self.settings.CLOSE_TIMEOUT_S)
            self._browser = None
        await self._stop_playwright()
        logger.info("Browser closed")

    async def _stop_playwright(self) -> None:
        if self._playwright is not None:
            await close_quietly(self._playwright.stop, what="playwright",
                                timeout_s=self.settings.CLOSE_TIMEOUT_S)
            self._playwright = None

    def _context_options(self) -> dict:
        options = {
            "ignore_https_errors": True,
            "viewport": {
                "width": self.settings.VIEWPORT_WIDTH,
                "height": self.settings.VIEWPORT_HEIGHT,
            },
        }
        if self.settings.USER_AGENT:
            options["user_agent"] = self.settings.USER_AGENT
        return options

    @asynccontextmanager
    async def session(self, identity: Optional[str] = None) -> AsyncIterator[BrowserSession]:
        """Open an isolated context (no shared cookies or storage).

        The context is closed on every exit path, including cancellation of
        the enclosing task. Close failures are logged, never raised.
        """
        if self._browser is None:
            raise RuntimeError("BrowserPool is not started")

        context = await self._browser.new_context(**self._context_options())
        recorder = ResponseRecorder(metrics=self.metrics)
        try:
            context.set_default_timeout(self.settings.PAGE_DEFAULT_TIMEOUT_S * 1000)
            page = await context.new_page()
            await page.route("**/*", block_heavy_resources)
            page.on("response", recorder.on_response)
            yield BrowserSession(context, page, recorder)
        finally:
            recorder.cancel()
            await close_quietly(context.close, what=f"context:{identity or 'anonymous'}",
                                timeout_s=self.settings.CLOSE_TIMEOUT_S)
