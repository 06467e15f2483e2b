# dealwatch/cli/runner.py

"""Headless CLI commands over the cleaning pipeline."""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from dealwatch.errors import DealwatchError, InvalidInputError
from dealwatch.models.sync_status import STATUS_SUCCESS, SyncStatus
from dealwatch.notify.bark_client import BarkClient
from dealwatch.services.data_cleaning import DataCleaningService
from dealwatch.services.health_checker import HealthChecker
from dealwatch.services.ingestion import PushIngestor
from dealwatch.services.job_runner import (
    JOB_PRICE_CHECK,
    JOB_PROMOTE,
    JOB_RECORD_TRENDS,
    Job,
    JobRunner,
    build_jobs,
)
from dealwatch.services.notification_checker import NotificationChecker
from dealwatch.services.scheduler import Scheduler
from dealwatch.storage.candidate_repo import CandidateRepository
from dealwatch.storage.database import Database
from dealwatch.storage.master_product_repo import MasterProductRepository
from dealwatch.storage.notification_repo import (
    BlockedRepository,
    NotificationRepository,
    UserSettingsRepository,
)
from dealwatch.storage.sync_status_repo import SyncStatusRepository
from dealwatch.storage.trend_repo import TrendRepository

logger = logging.getLogger("dealwatch.cli")

# Stderr console for status messages so stdout stays clean
_err = Console(stderr=True)


@dataclass
class App:
    """Every component wired onto one database."""

    db: Database
    service: DataCleaningService
    checker: NotificationChecker
    runner: JobRunner
    jobs: dict[str, Job]
    health: HealthChecker
    bark: BarkClient

    def close(self) -> None:
        """Release the HTTP session and the database."""
        self.bark.close()
        self.db.close()


def build_app(db_path: Path | str | None = None) -> App:
    """Open the database and wire the services onto it."""
    db = Database(db_path)
    masters = MasterProductRepository(db)
    statuses = SyncStatusRepository(db)
    bark = BarkClient()

    service = DataCleaningService(
        db, masters, CandidateRepository(db), TrendRepository(db),
    )
    checker = NotificationChecker(
        NotificationRepository(db),
        masters,
        UserSettingsRepository(db),
        BlockedRepository(db),
        bark,
    )
    jobs = build_jobs(service, checker)
    return App(
        db=db,
        service=service,
        checker=checker,
        runner=JobRunner(statuses),
        jobs=jobs,
        health=HealthChecker(statuses, jobs),
        bark=bark,
    )


def load_items(path: Path) -> list[Any]:
    """Read a push payload: a JSON list or ``{"items": [...]}``."""
    try:
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise InvalidInputError(f"cannot read {path}: {exc}") from exc

    if isinstance(payload, dict):
        payload = payload.get("items")
    if not isinstance(payload, list):
        raise InvalidInputError(
            f"{path} must hold a list or an object with an 'items' list"
        )
    return payload


def run_ingest(app: App, path: Path) -> int:
    """Push a JSON file of observations through the pipeline."""
    try:
        items = load_items(path)
        result = PushIngestor(app.service).handle_push(items)
    except DealwatchError as exc:
        _err.print(f"[red]Ingest failed: {exc}[/red]")
        return 1

    _err.print(
        f"[green]✓ {result.received} received, "
        f"{result.promoted} matched[/green]"
        + (f" [red]{result.failed} failed[/red]" if result.failed else "")
    )
    return 0


def _print_status(status: SyncStatus) -> int:
    if status.status == STATUS_SUCCESS:
        _err.print(
            f"[green]✓ {status.job_name}: "
            f"{status.product_count} products[/green]"
        )
        return 0
    _err.print(
        f"[red]✗ {status.job_name}: {status.error_message}[/red]"
    )
    return 1


def run_job(app: App, name: str) -> int:
    """Run one background job in the foreground."""
    _err.print(f"[bold]Running {name}...[/bold]")
    return _print_status(app.runner.run(name, app.jobs[name]))


def run_promote(app: App) -> int:
    return run_job(app, JOB_PROMOTE)


def run_record_trends(app: App) -> int:
    return run_job(app, JOB_RECORD_TRENDS)


def run_price_check(app: App) -> int:
    return run_job(app, JOB_PRICE_CHECK)


def run_health_check(app: App) -> int:
    """Print a freshness table of every job."""
    results = app.health.check_all()

    table = Table(
        title="Job Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Job", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Age", justify="right")
    table.add_column("Products", justify="right")
    table.add_column("Notes", style="dim")

    unhealthy = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "stale":
            status = "[yellow]⚠️  STALE[/yellow]"
            unhealthy = True
        elif r.status == "never":
            status = "[dim]— NEVER[/dim]"
            unhealthy = True
        else:
            status = "[red]❌ FAILED[/red]"
            unhealthy = True

        age = f"{r.age_seconds:.0f}s" if r.age_seconds is not None else "—"
        table.add_row(
            r.job_name, status, age, str(r.product_count), r.message,
        )

    _err.print(table)
    return 1 if unhealthy else 0


async def run_serve(app: App, duration: float | None = None) -> int:
    """Run the scheduler until interrupted."""
    scheduler = Scheduler(app.runner, app.jobs)
    _err.print(
        f"[bold]Scheduling {len(app.jobs)} jobs[/bold] "
        "[dim](Ctrl+C to stop)[/dim]"
    )
    try:
        await scheduler.serve(duration)
    except asyncio.CancelledError:
        logger.info("Scheduler cancelled")
    return 0
