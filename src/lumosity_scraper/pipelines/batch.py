"""Batch Orchestrator: runs harvests in bounded, timeout-guarded batches."""

import asyncio
import time
import uuid
from typing import Any, AsyncContextManager, Callable, List, Optional, Sequence

from ..accounts import load_accounts
from ..config import AppSettings, get_settings
from ..io_clients.browser import BrowserPool
from ..loaders.results import summarize_results, write_results
from ..models.accounts import Account
from ..models.report import HarvestResult
from ..resilience import (
    BrowserStartError,
    HarvestTimeoutError,
    OverallTimeoutError,
    ResultsWriteError,
    race_with_timeout,
)
from ..scraper_logging import MetricsCollector, get_logger, set_run_id
from ..transformers.stats import failure_report
from .harvest import SessionHarvester

logger = get_logger(__name__)

PoolFactory = Callable[[AppSettings, MetricsCollector], AsyncContextManager[Any]]


def default_pool_factory(settings: AppSettings, metrics: MetricsCollector) -> BrowserPool:
    return BrowserPool(settings, metrics)


def chunk_accounts(accounts: Sequence[Account], size: int) -> List[List[Account]]:
    """Split accounts into consecutive chunks of at most ``size``, keeping order."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(accounts[i:i + size]) for i in range(0, len(accounts), size)]


class BatchOrchestrator:
    """Harvests a list of accounts and persists the ordered Results Set.

    Accounts run in consecutive batches of up to MAX_CONCURRENT_SESSIONS
    concurrent sessions. Each session is raced against ACCOUNT_TIMEOUT_S and
    its slot against BATCH_TIMEOUT_S; the whole run, browser launch included,
    against OVERALL_TIMEOUT_S.
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        metrics: Optional[MetricsCollector] = None,
        pool_factory: Optional[PoolFactory] = None,
    ):
        self.settings = settings or get_settings()
        self.metrics = metrics or MetricsCollector()
        self.pool_factory = pool_factory or default_pool_factory

    async def run(self, accounts: Sequence[Account]) -> List[HarvestResult]:
        """Harvest every account and write the Results Set.

        Returns:
            One report per account, in input order

        Raises:
            OverallTimeoutError: the run exceeded OVERALL_TIMEOUT_S; nothing
                is persisted in that case
            BrowserStartError: the shared browser could not be launched
        """
        overall = self.settings.OVERALL_TIMEOUT_S
        start = time.monotonic()
        logger.info("Starting harvest run", accounts=len(accounts),
                    concurrency=self._concurrency(accounts), overall_timeout_s=overall)

        try:
            results = await race_with_timeout(
                self._run_batches(accounts),
                overall,
                f"Overall extraction timeout ({overall:g}s)",
                error_cls=OverallTimeoutError,
            )
        except OverallTimeoutError:
            logger.error("Harvest run timed out", timeout_s=overall,
                         duration_s=round(time.monotonic() - start, 1))
            raise
        except BrowserStartError as e:
            logger.error("Harvest run aborted", error=str(e))
            raise

        try:
            await asyncio.to_thread(write_results, results, self.settings.RESULTS_PATH)
        except ResultsWriteError as e:
            logger.warning("Continuing without a saved Results Set", error=str(e))

        self._record_summary(results, time.monotonic() - start)
        return results

    def _concurrency(self, accounts: Sequence[Account]) -> int:
        return max(1, min(len(accounts), self.settings.MAX_CONCURRENT_SESSIONS))

    async def _run_batches(self, accounts: Sequence[Account]) -> List[HarvestResult]:
        if not accounts:
            return []

        size = self._concurrency(accounts)
        chunks = chunk_accounts(accounts, size)
        results: List[HarvestResult] = []

        async with self.pool_factory(self.settings, self.metrics) as pool:
            harvester = SessionHarvester(pool, self.settings, self.metrics)

            for batch_index, chunk in enumerate(chunks, start=1):
                offset = (batch_index - 1) * size
                logger.info("Processing batch", batch=batch_index, batches=len(chunks), accounts=len(chunk))
                batch_start = time.monotonic()

                # gather keeps input order regardless of completion order
                batch_results = await asyncio.gather(*(
                    self._run_slot(harvester, account, offset + i + 1, batch_index)
                    for i, account in enumerate(chunk)
                ))
                results.extend(batch_results)

                batch_duration = time.monotonic() - batch_start
                self.metrics.increment("batch.completed")
                self.metrics.timer("batch.duration", batch_duration)
                logger.info("Batch completed", batch=batch_index, duration_s=round(batch_duration, 1))

                if batch_index < len(chunks) and self.settings.BATCH_PAUSE_S > 0:
                    await asyncio.sleep(self.settings.BATCH_PAUSE_S)

        return results

    async def _run_slot(
        self,
        harvester: SessionHarvester,
        account: Account,
        position: int,
        batch_index: int,
    ) -> HarvestResult:
        """Run one harvest under the account and batch budgets; never raises."""
        identity = account.identity
        try:
            account_race = race_with_timeout(
                harvester.harvest(account, position=position, batch_index=batch_index),
                self.settings.ACCOUNT_TIMEOUT_S,
                f"Account timeout: {identity}",
            )
            return await race_with_timeout(
                account_race,
                self.settings.BATCH_TIMEOUT_S,
                f"Batch timeout for {identity}",
            )
        except HarvestTimeoutError as e:
            logger.error("Account timed out", identity=identity, batch=batch_index, error=str(e))
            self.metrics.increment("harvest.timeout")
            return failure_report(account, e)
        except Exception as e:
            logger.error("Account slot failed", identity=identity, batch=batch_index, error=str(e))
            self.metrics.increment("harvest.failure")
            return failure_report(account, e)

    def _record_summary(self, results: Sequence[HarvestResult], duration: float) -> None:
        summary = summarize_results(results)
        self.metrics.increment("run.completed")
        self.metrics.timer("run.duration", duration)
        self.metrics.gauge("run.succeeded", summary["succeeded"])
        self.metrics.gauge("run.failed", summary["failed"])
        logger.info(
            "Harvest run completed",
            total=summary["total"],
            succeeded=summary["succeeded"],
            failed=summary["failed"],
            duration_s=round(duration, 1),
            avg_per_account_s=round(duration / summary["total"], 1) if summary["total"] else 0,
        )


async def run_harvest(
    settings: Optional[AppSettings] = None,
    metrics: Optional[MetricsCollector] = None,
    pool_factory: Optional[PoolFactory] = None,
) -> List[HarvestResult]:
    """Load the accounts, harvest them all and persist the Results Set.

    Raises:
        AccountSourceError: the account list is unusable; no session is opened
        BrowserStartError: the shared browser could not be launched
        OverallTimeoutError: the run exceeded its budget
    """
    settings = settings or get_settings()
    set_run_id(str(uuid.uuid4())[:8])

    accounts = load_accounts(settings.ACCOUNTS_PATH)
    orchestrator = BatchOrchestrator(settings, metrics, pool_factory)
    return await orchestrator.run(accounts)
