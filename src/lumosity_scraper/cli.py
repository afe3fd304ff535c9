"""Lumosity harvester CLI using Typer."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

app = typer.Typer(help="Lumosity account stats harvesting CLI")


def _load_settings(**overrides):
    """Settings with CLI overrides applied; unset options keep configured values."""
    from .config import get_settings

    updates = {key: value for key, value in overrides.items() if value is not None}
    settings = get_settings()
    return settings.model_copy(update=updates) if updates else settings


@app.command()
def run(
    accounts: Annotated[Optional[Path], typer.Option("--accounts", help="Accounts JSON file")] = None,
    output: Annotated[Optional[Path], typer.Option("--output", help="Results Set output file")] = None,
    concurrency: Annotated[Optional[int], typer.Option("--concurrency", min=1, help="Concurrent browser sessions per batch")] = None,
    daily_report: Annotated[bool, typer.Option("--daily-report/--no-daily-report", help="Also store today's daily report records")] = False,
):
    """Harvest every account and write the Results Set."""
    from .scraper_logging import configure_logging

    settings = _load_settings(
        ACCOUNTS_PATH=accounts,
        RESULTS_PATH=output,
        MAX_CONCURRENT_SESSIONS=concurrency,
    )
    configure_logging(settings)
    asyncio.run(_run_harvest(settings, daily_report))


async def _run_harvest(settings, daily_report: bool):
    """Execute the harvest and print its summary."""
    from .loaders.results import summarize_results
    from .pipelines.batch import run_harvest
    from .resilience import AccountSourceError, BrowserStartError, OverallTimeoutError, ScraperError
    from .scraper_logging import MetricsCollector

    metrics = MetricsCollector()
    typer.echo(f"🚀 Harvesting accounts from {settings.ACCOUNTS_PATH}")

    try:
        results = await run_harvest(settings, metrics)
    except AccountSourceError as e:
        typer.echo(f"❌ Account loading failed: {e}", err=True)
        raise typer.Exit(1)
    except BrowserStartError as e:
        typer.echo(f"❌ Browser failed to start: {e}", err=True)
        raise typer.Exit(1)
    except OverallTimeoutError as e:
        typer.echo(f"❌ Harvest timed out: {e}", err=True)
        raise typer.Exit(1)

    summary = summarize_results(results)
    typer.echo("\n📊 Harvest Summary:")
    typer.echo(f"   ✅ Successful: {summary['succeeded']}/{summary['total']}")
    if summary["failed"]:
        typer.echo(f"   ❌ Failed: {', '.join(summary['failed_identities'])}")
    typer.echo(f"   💾 Results saved to: {settings.RESULTS_PATH}")

    if daily_report:
        try:
            _store_daily_reports(results, settings)
        except ScraperError as e:
            typer.echo(f"⚠️  Failed to store daily reports: {e}", err=True)

    typer.echo("\n🎉 Harvest completed!")


def _store_daily_reports(results, settings) -> None:
    from .loaders.daily_reports import (
        DailyReportStore,
        build_daily_stats_report,
        build_daily_streaks_report,
    )
    from .models.daily import DailyStatsReport, DailyStreaksReport

    streaks = build_daily_streaks_report(results, tz_name=settings.TIMEZONE)
    stats = build_daily_stats_report(results, tz_name=settings.TIMEZONE)
    DailyReportStore(settings.DAILY_REPORTS_PATH, DailyStreaksReport).upsert(streaks)
    DailyReportStore(settings.DAILY_REPORTS_PATH, DailyStatsReport).upsert(stats)
    typer.echo(f"📅 Daily reports for {streaks.report_date.isoformat()} saved to {settings.DAILY_REPORTS_PATH} "
               f"({streaks.user_count} users)")


@app.command()
def streaks(
    identity: Annotated[str, typer.Argument(help="Account identity (login e-mail)")],
    results: Annotated[Optional[Path], typer.Option("--results", help="Results Set file")] = None,
):
    """Print one account's streak block as JSON."""
    from .loaders.daily_reports import find_account_streaks
    from .loaders.results import read_results
    from .resilience import ScraperError

    settings = _load_settings(RESULTS_PATH=results)
    try:
        result_set = read_results(settings.RESULTS_PATH)
    except ScraperError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    block = find_account_streaks(result_set, identity)
    if block is None:
        typer.echo(f"❌ No successful report for {identity}", err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(block.to_wire(), indent=2))


@app.command("daily-report")
def daily_report(
    results: Annotated[Optional[Path], typer.Option("--results", help="Results Set file")] = None,
    store: Annotated[Optional[Path], typer.Option("--store", help="Daily report store file")] = None,
):
    """Store today's daily report records from a persisted Results Set."""
    from .loaders.results import read_results
    from .resilience import ScraperError

    settings = _load_settings(RESULTS_PATH=results, DAILY_REPORTS_PATH=store)
    try:
        result_set = read_results(settings.RESULTS_PATH)
        _store_daily_reports(result_set, settings)
    except ScraperError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    app()
