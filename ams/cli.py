"""Command line entry point for the batch jobs.

Each job command goes through the job runner, so a CLI run takes the same
overlap guard and leaves the same JobRun history as a scheduled run.
"""
from __future__ import annotations

import asyncio
from datetime import date
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

load_dotenv()

from ams.core.logging import configure_logging  # noqa: E402
from ams.db.models.jobs import JobRun  # noqa: E402

app = typer.Typer(help="Arrival management batch jobs")
console = Console()

DateOption = Annotated[Optional[str], typer.Option("--date", help="Day to process (YYYY-MM-DD). Defaults to today.")]


@app.callback()
def main(log_level: Annotated[Optional[str], typer.Option(help="Override AMS_LOG_LEVEL.")] = None):
    configure_logging(log_level)


def _parse_day(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(f"[bold red]Invalid date '{value}', expected YYYY-MM-DD[/bold red]")
        raise typer.Exit(code=1)


def _run(name: str, **params) -> JobRun:
    from ams.services.jobs.runner import run_job

    params = {k: v for k, v in params.items() if v is not None}
    try:
        run = run_job(name, **params)
    except ValueError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"[bold red]Job {name} failed: {e}[/bold red]")
        raise typer.Exit(code=1)

    if run.status == "skipped":
        console.print(f"[yellow]{run.error_message}[/yellow]")
        raise typer.Exit(code=2)

    style = "green" if run.status == "success" else "yellow"
    console.print(f"[bold {style}]{name}: {run.status}[/bold {style}]")
    for key, value in (run.counters or {}).items():
        console.print(f"  {key}: {value}")
    return run


@app.command("update-arrival-status")
def update_arrival_status(date: DateOption = None):
    """Classify today's arrivals as on_time, delay or advance."""
    _run("update-arrival-status", date=_parse_day(date))


@app.command("update-delivery-compliance")
def update_delivery_compliance(date: DateOption = None):
    """End-of-day compliance pass, including the no-show catch-up."""
    _run("update-delivery-compliance", date=_parse_day(date))


@app.command("sync-visitor-checkin")
def sync_visitor_checkin(date: DateOption = None):
    """Copy security check-in times from the visitor log."""
    _run("sync-visitor-checkin", date=_parse_day(date))


@app.command("sync-visitor-checkout")
def sync_visitor_checkout(date: DateOption = None):
    """Copy security checkout times from the visitor log."""
    _run("sync-visitor-checkout", date=_parse_day(date))


@app.command("calculate-delivery-performance")
def calculate_delivery_performance(
    month: Annotated[Optional[int], typer.Option(help="Month (1-12). Defaults to the previous month.")] = None,
    year: Annotated[Optional[int], typer.Option(help="Year. Defaults to the previous month's year.")] = None,
    top: Annotated[int, typer.Option(min=1, help="How many suppliers to list.")] = 5,
):
    """Score and rank every supplier for one month."""
    if month is not None and not 1 <= month <= 12:
        console.print("[bold red]Month must be between 1 and 12[/bold red]")
        raise typer.Exit(code=1)
    run = _run("calculate-delivery-performance", month=month, year=year)
    if run.counters:
        print_top_suppliers(run.counters["month"], run.counters["year"], top)


def print_top_suppliers(month: int, year: int, limit: int = 5) -> None:
    from ams.db.session import SessionLocal
    from ams.services.performance.service import get_performance_list
    from ams.services.suppliers.directory import get_supplier_directory

    directory = get_supplier_directory()
    table = Table(title=f"Top {limit} suppliers {month:02d}/{year}")
    table.add_column("Rank", justify="right", style="cyan")
    table.add_column("Supplier", style="magenta")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Grade")
    table.add_column("Category")
    table.add_column("Fulfillment %", justify="right")
    table.add_column("On time", justify="right")

    with SessionLocal() as db:
        for perf in get_performance_list(db, month, year, limit=limit):
            table.add_row(
                str(perf.ranking or "-"),
                f"{perf.bp_code} {directory.name_for(perf.bp_code)}",
                str(perf.final_score),
                perf.performance_grade or "-",
                perf.category or "-",
                f"{float(perf.fulfillment_percentage):.2f}",
                f"{perf.on_time_deliveries}/{perf.total_deliveries}",
            )
    console.print(table)


@app.command("cleanup-job-runs")
def cleanup_job_runs(keep_days: Annotated[int, typer.Option(help="Keep runs newer than this many days.")] = 30):
    """Prune old job run history."""
    _run("cleanup-job-runs", keep_days=keep_days)


@app.command("scheduler")
def scheduler(poll_interval: Annotated[float, typer.Option(help="Seconds between schedule checks.")] = 20.0):
    """Run the job scheduler in the foreground until interrupted."""
    from ams.services.jobs.scheduler import run_scheduler_forever

    console.print("[bold yellow]Scheduler running, Ctrl+C to stop[/bold yellow]")
    try:
        asyncio.run(run_scheduler_forever(poll_interval_seconds=poll_interval))
    except KeyboardInterrupt:
        console.print("[bold dim]Scheduler stopped[/bold dim]")


if __name__ == "__main__":
    app()
