"""
Crawl CLI Commands
==================

CLI commands for running the crawl, its worker, and its checkpoint.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from anisync.ingestion.checkpoint import CheckpointError, get_checkpoint_store
from anisync.ingestion.crawl import CrawlState
from anisync.ingestion.jobs import enqueue_crawl, get_job_status, run_crawl
from anisync.ingestion.registry import get_default_registry
from anisync.services.cache_service import create_redis_client

console = Console()
crawl_app = typer.Typer(help="Crawl commands")
checkpoint_app = typer.Typer(help="Checkpoint commands")
jobs_app = typer.Typer(help="Job management commands")

crawl_app.add_typer(checkpoint_app, name="checkpoint")
crawl_app.add_typer(jobs_app, name="jobs")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(log_dir: Path, verbose: bool = False) -> logging.Logger:
    """
    Install console and file handlers for a crawl run.

    Console output goes through rich; `crawler.log` receives INFO and
    above, `crawler-error.log` only errors.

    Returns:
        The logger handed to the crawl components
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    info_file = logging.FileHandler(log_dir / "crawler.log", encoding="utf-8")
    info_file.setLevel(logging.INFO)
    info_file.setFormatter(logging.Formatter(LOG_FORMAT))

    error_file = logging.FileHandler(log_dir / "crawler-error.log", encoding="utf-8")
    error_file.setLevel(logging.ERROR)
    error_file.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True), info_file, error_file],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger("anisync.crawler")


def _redis_if_needed():
    registry = get_default_registry()
    if registry.crawl.checkpoint_backend == "redis":
        return create_redis_client()
    return None


@crawl_app.command("run")
def run(
    enqueue: bool = typer.Option(False, "--enqueue", help="Enqueue a job for the worker instead"),
    log_dir: Path = typer.Option(Path("."), "--log-dir", help="Directory for crawler log files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """
    Run one crawl sweep over the remote id list.

    Examples:
        anisync crawl run
        anisync crawl run --enqueue
    """
    if enqueue:
        rprint("\n[dim]Enqueueing job for async processing...[/dim]")
        try:
            job_id = asyncio.run(enqueue_crawl())
        except Exception as e:
            rprint(f"\n[red]Error:[/red] Failed to enqueue job: {e}")
            rprint("\nMake sure Redis is running")
            raise typer.Exit(1)
        rprint("\n[green]Job enqueued successfully![/green]")
        rprint(f"Job ID: [bold]{job_id}[/bold]")
        rprint("\nCheck status with:")
        rprint(f"  anisync crawl jobs status {job_id}")
        return

    crawl_logger = setup_logging(log_dir, verbose)
    registry = get_default_registry()
    rprint("\n[bold]Starting crawl[/bold]")
    rprint(f"  Id list: {registry.crawl.id_list_url}")
    rprint(f"  Delay: {registry.crawl.delay_seconds}s")
    rprint(f"  Gate policy: {registry.crawl.gate_policy.value}")

    result = asyncio.run(_run_sweep(crawl_logger))
    _display_crawl_result(result.to_dict())

    if result.state == CrawlState.ABORTED:
        raise typer.Exit(1)


async def _run_sweep(crawl_logger: logging.Logger):
    redis = _redis_if_needed()
    try:
        return await run_crawl(redis=redis, crawl_logger=crawl_logger)
    finally:
        if redis is not None:
            await redis.aclose()


@crawl_app.command("worker")
def start_worker(
    burst: bool = typer.Option(False, "--burst", help="Run in burst mode (exit when queue empty)"),
) -> None:
    """
    Start the crawl worker.

    The worker processes queued crawl jobs and runs the nightly crawl.

    Examples:
        anisync crawl worker
        anisync crawl worker --burst
    """
    from arq import run_worker

    from anisync.ingestion.jobs import WorkerSettings

    rprint("[bold]Starting crawl worker...[/bold]")
    rprint("Press Ctrl+C to stop\n")

    try:
        run_worker(WorkerSettings, burst=burst)
    except Exception as e:
        rprint(f"[red]Error:[/red] Worker failed: {e}")
        rprint("\nMake sure Redis is running")
        raise typer.Exit(1)


# Checkpoint subcommands


async def _with_checkpoint(action: str):
    redis = _redis_if_needed()
    store = get_checkpoint_store(get_default_registry().crawl, redis=redis)
    try:
        if action == "read":
            return store.location, await store.read()
        return store.location, await store.clear()
    finally:
        if redis is not None:
            await redis.aclose()


@checkpoint_app.command("show")
def show_checkpoint() -> None:
    """
    Show the last fully processed id.

    Examples:
        anisync crawl checkpoint show
    """
    try:
        location, value = asyncio.run(_with_checkpoint("read"))
    except CheckpointError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    rprint(f"  Location: {location}")
    if value is None:
        rprint("  Checkpoint: [yellow]none[/yellow] (next crawl starts from the beginning)")
    else:
        rprint(f"  Checkpoint: [bold]{value}[/bold]")


@checkpoint_app.command("reset")
def reset_checkpoint(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """
    Remove the checkpoint so the next crawl starts from the beginning.

    Examples:
        anisync crawl checkpoint reset --force
    """
    if not force and not typer.confirm("Reset the crawl checkpoint?"):
        rprint("Reset cancelled.")
        raise typer.Exit(0)

    try:
        location, removed = asyncio.run(_with_checkpoint("clear"))
    except CheckpointError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if removed:
        rprint(f"[green]Checkpoint removed[/green] ({location})")
    else:
        rprint(f"[yellow]No checkpoint to remove[/yellow] ({location})")


# Jobs subcommands


@jobs_app.command("status")
def job_status(
    job_id: str = typer.Argument(..., help="Job ID to check"),
) -> None:
    """
    Check the status of a crawl job.

    Examples:
        anisync crawl jobs status abc123
    """
    try:
        result = asyncio.run(get_job_status(job_id))
    except Exception as e:
        rprint(f"[red]Error:[/red] Failed to get job status: {e}")
        rprint("\nMake sure Redis is running")
        raise typer.Exit(1)

    if result is None:
        rprint(f"[yellow]Job '{job_id}' not found[/yellow]")
        raise typer.Exit(1)

    rprint(f"\n[bold]Job: {job_id}[/bold]")
    rprint(f"  Status: {result.get('status', 'unknown')}")
    if isinstance(result.get("result"), dict):
        _display_crawl_result(result["result"])


@crawl_app.command("providers")
def list_providers() -> None:
    """
    List configured providers.

    Examples:
        anisync crawl providers
    """
    registry = get_default_registry()

    table = Table(title="Providers")
    table.add_column("Name", style="bold")
    table.add_column("Base URL")
    table.add_column("Status")

    for provider in registry.list_providers():
        status = "[green]enabled[/green]" if provider.enabled else "[yellow]disabled[/yellow]"
        table.add_row(provider.name, provider.base_url, status)

    console.print(table)


def _display_crawl_result(result: dict, max_errors: Optional[int] = 10) -> None:
    """Display crawl result in a formatted summary."""
    state = result.get("state", "unknown")
    state_color = {
        "completed": "green",
        "processing": "blue",
        "aborted": "red",
    }.get(state, "white")

    rprint("\n[bold]Results:[/bold]")
    rprint(f"  State: [{state_color}]{state}[/{state_color}]")
    if result.get("duration_seconds"):
        rprint(f"  Duration: {result['duration_seconds']:.1f}s")

    rprint("\n[bold]Statistics:[/bold]")
    rprint(f"  Ids in list: {result.get('total_ids', 0)}")
    rprint(f"  Started at position: {result.get('start_index', 0)}")
    rprint(f"  Saved: {result.get('saved', 0)}")
    rprint(f"  Skipped: {result.get('skipped', 0)}")
    rprint(f"  Failed: {result.get('failed', 0)}")
    rprint(f"  Checkpoint: {result.get('last_checkpoint') or 'none'}")

    errors = result.get("errors", [])
    if errors:
        rprint(f"\n[bold red]Errors ({len(errors)}):[/bold red]")
        for error in errors[:max_errors]:
            rprint(f"  • {error}")
        if max_errors is not None and len(errors) > max_errors:
            rprint(f"  ... and {len(errors) - max_errors} more")
