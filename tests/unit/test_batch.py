"""Tests for batch orchestration, ordering and timeout races."""

import json

import pytest

from lumosity_scraper.models.report import AccountReport, FailedAccountReport
from lumosity_scraper.pipelines.batch import BatchOrchestrator, chunk_accounts, run_harvest
from lumosity_scraper.resilience import AccountSourceError, BrowserStartError, OverallTimeoutError
from lumosity_scraper.scraper_logging import MetricsCollector
from tests.fakes import BrokenPool, FakePage, FakePool, profile_response


class TestChunkAccounts:
    """Test batch partitioning."""

    def test_consecutive_chunks(self, accounts):
        chunks = chunk_accounts(accounts, 2)
        assert [[a.identity for a in c] for c in chunks] == [
            ["a@example.com", "b@example.com"],
            ["c@example.com"],
        ]

    def test_empty(self):
        assert chunk_accounts([], 3) == []

    def test_invalid_size(self, accounts):
        with pytest.raises(ValueError):
            chunk_accounts(accounts, 0)


class TestOrchestrator:
    """Test runs against the fake browser pool."""

    @pytest.mark.asyncio
    async def test_results_in_input_order_and_persisted(self, settings, accounts, sample_profile):
        pool = FakePool(responses={a.identity: [profile_response(sample_profile)] for a in accounts})
        metrics = MetricsCollector()
        orchestrator = BatchOrchestrator(settings.model_copy(update={"MAX_CONCURRENT_SESSIONS": 2}), metrics, pool.factory)

        results = await orchestrator.run(accounts)

        assert [r.account_info.identity for r in results] == [a.identity for a in accounts]
        assert all(isinstance(r, AccountReport) for r in results)
        assert pool.started and pool.stopped
        assert sorted(pool.closed) == sorted(pool.opened)
        assert metrics.counter("batch.completed") == 2
        assert metrics.counter("run.completed") == 1

        saved = json.loads(settings.RESULTS_PATH.read_text(encoding="utf-8"))
        assert [item["accountInfo"]["identity"] for item in saved] == [a.identity for a in accounts]

    @pytest.mark.asyncio
    async def test_hung_account_times_out_without_blocking_others(self, settings, accounts):
        """Test a hung session becomes a timeout failure in its own position."""
        pool = FakePool(pages={"b@example.com": FakePage(hang_on="/stats")})
        fast = settings.model_copy(update={
            "ACCOUNT_TIMEOUT_S": 0.2,
            "BATCH_TIMEOUT_S": 1.0,
            "OVERALL_TIMEOUT_S": 5.0,
        })
        metrics = MetricsCollector()

        results = await BatchOrchestrator(fast, metrics, pool.factory).run(accounts)

        assert isinstance(results[0], AccountReport)
        assert isinstance(results[1], FailedAccountReport)
        assert results[1].error == "Account timeout: b@example.com"
        assert isinstance(results[2], AccountReport)
        assert metrics.counter("harvest.timeout") == 1
        assert "b@example.com" in pool.closed

    @pytest.mark.asyncio
    async def test_batch_timeout_when_tighter_than_account(self, settings, account):
        pool = FakePool(pages={account.identity: FakePage(hang_on="/stats")})
        fast = settings.model_copy(update={"ACCOUNT_TIMEOUT_S": 5.0, "BATCH_TIMEOUT_S": 0.1})

        results = await BatchOrchestrator(fast, MetricsCollector(), pool.factory).run([account])

        assert results[0].error == f"Batch timeout for {account.identity}"

    @pytest.mark.asyncio
    async def test_overall_timeout_persists_nothing(self, settings, accounts):
        pool = FakePool(pages={a.identity: FakePage(hang_on="/stats") for a in accounts})
        fast = settings.model_copy(update={
            "ACCOUNT_TIMEOUT_S": 5.0,
            "BATCH_TIMEOUT_S": 5.0,
            "OVERALL_TIMEOUT_S": 0.2,
        })

        with pytest.raises(OverallTimeoutError, match="Overall extraction timeout"):
            await BatchOrchestrator(fast, MetricsCollector(), pool.factory).run(accounts)

        assert not settings.RESULTS_PATH.exists()
        assert pool.stopped

    @pytest.mark.asyncio
    async def test_empty_account_list(self, settings):
        pool = FakePool()
        results = await BatchOrchestrator(settings, MetricsCollector(), pool.factory).run([])

        assert results == []
        assert pool.started is False
        assert json.loads(settings.RESULTS_PATH.read_text(encoding="utf-8")) == []

    @pytest.mark.asyncio
    async def test_write_failure_is_not_fatal(self, settings, accounts, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x", encoding="utf-8")
        broken = settings.model_copy(update={"RESULTS_PATH": blocker / "results.json"})

        results = await BatchOrchestrator(broken, MetricsCollector(), FakePool().factory).run(accounts)

        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_results_written_off_the_event_loop(self, settings, account, monkeypatch):
        offloaded = []

        async def to_thread(func, *args):
            offloaded.append(func.__name__)
            return func(*args)

        monkeypatch.setattr("lumosity_scraper.pipelines.batch.asyncio.to_thread", to_thread)

        await BatchOrchestrator(settings, MetricsCollector(), FakePool().factory).run([account])

        assert offloaded == ["write_results"]
        assert settings.RESULTS_PATH.exists()

    @pytest.mark.asyncio
    async def test_browser_start_failure_aborts_run(self, settings, accounts):
        pool = BrokenPool(BrowserStartError("Failed to launch browser: Executable doesn't exist"))

        with pytest.raises(BrowserStartError, match="Failed to launch browser"):
            await BatchOrchestrator(settings, MetricsCollector(), pool.factory).run(accounts)

        assert pool.opened == []
        assert not settings.RESULTS_PATH.exists()

    @pytest.mark.asyncio
    async def test_failures_are_counted(self, settings, accounts):
        pool = FakePool(pages={"c@example.com": FakePage(failing_urls={"https://app.example.test/login"})})
        metrics = MetricsCollector()

        results = await BatchOrchestrator(settings, metrics, pool.factory).run(accounts)

        assert [r.success for r in results] == [True, True, False]
        assert metrics.get_metrics()["gauges"] == {"run.succeeded": 2, "run.failed": 1}


class TestRunHarvest:
    """Test the load-then-run entry point."""

    @pytest.mark.asyncio
    async def test_invalid_accounts_abort_before_browser_start(self, settings):
        settings.ACCOUNTS_PATH.write_text("[]", encoding="utf-8")
        pool = FakePool()

        with pytest.raises(AccountSourceError):
            await run_harvest(settings, MetricsCollector(), pool.factory)

        assert pool.started is False
        assert not settings.RESULTS_PATH.exists()

    @pytest.mark.asyncio
    async def test_loads_and_runs(self, settings):
        settings.ACCOUNTS_PATH.write_text(json.dumps([
            {"identity": "a@example.com", "secret": "pw", "cohortLabel": "s1"},
        ]), encoding="utf-8")

        results = await run_harvest(settings, MetricsCollector(), FakePool().factory)

        assert [r.account_info.identity for r in results] == ["a@example.com"]
        assert settings.RESULTS_PATH.exists()
