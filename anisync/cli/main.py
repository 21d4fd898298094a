"""Anisync CLI using Typer."""

import asyncio
import json
import os
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich import print as rprint
from rich.console import Console

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

from anisync.cli.crawl import crawl_app  # noqa: E402

app = typer.Typer(
    name="anisync",
    help="Anisync - reconciled anime metadata from several providers",
    add_completion=False,
)
app.add_typer(crawl_app, name="crawl")

console = Console()


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(6969, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(
        False, "--reload", "-r", help="Enable auto-reload for development"
    ),
) -> None:
    """Start the anisync API server."""
    import uvicorn

    typer.echo(f"Starting anisync on http://{host}:{port}")
    typer.echo("Press Ctrl+C to stop the server")
    typer.echo("")

    uvicorn.run(
        "anisync.web.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def info(
    anime_id: str = typer.Argument(..., help="AniList id of the anime"),
    store: bool = typer.Option(False, "--store", "-s", help="Store the record if it passes the gate"),
) -> None:
    """Reconcile one anime from the providers and print its record."""
    from anisync.core.policies import is_storable
    from anisync.db.engine import get_session, init_db
    from anisync.db.repositories import AnimeRepository, DuplicateAnimeError
    from anisync.ingestion.registry import get_default_registry
    from anisync.ingestion.request import ResilientClient
    from anisync.ingestion.resolver import Reconciler

    registry = get_default_registry()

    async def reconcile():
        async with ResilientClient.from_config(registry.global_config) as client:
            return await Reconciler.from_registry(client, registry).reconcile(anime_id)

    with console.status(f"[bold blue]Reconciling {anime_id}...[/bold blue]"):
        anime = asyncio.run(reconcile())

    if anime is None:
        rprint(f"[red]Error:[/red] Could not reconcile anime {anime_id}")
        raise typer.Exit(1)

    console.print_json(json.dumps(anime.to_document()))

    if store:
        if not is_storable(anime, registry.crawl.gate_policy):
            rprint(f"[yellow]Anime {anime_id} is incomplete, not stored[/yellow]")
            raise typer.Exit(1)
        init_db()
        with get_session() as session:
            try:
                AnimeRepository(session).insert(anime)
            except DuplicateAnimeError:
                rprint(f"[yellow]Anime {anime_id} is already stored[/yellow]")
                return
        rprint(f"[green]Anime {anime_id} stored[/green]")


@app.command()
def init_db() -> None:
    """Initialize the database (create tables)."""
    from anisync.db.engine import init_db as db_init

    typer.echo("Initializing database...")
    db_init()
    typer.echo("Database initialized successfully!")


@app.command()
def version() -> None:
    """Show the anisync version."""
    typer.echo("anisync v0.1.0")


@app.command()
def check_config() -> None:
    """Check the current configuration status."""
    from anisync.db.engine import get_database_url
    from anisync.ingestion.registry import get_default_registry

    typer.echo("Anisync Configuration")
    typer.echo("=" * 40)

    # Check .env file
    env_found = False
    for _env_path in _env_paths:
        if _env_path.exists():
            typer.echo(f"  .env file: {_env_path}")
            env_found = True
            break
    if not env_found:
        typer.echo("  .env file: Not found")

    registry = get_default_registry()
    typer.echo(f"  Config file: {registry.config_path or 'defaults'}")
    retry = registry.global_config.retry
    typer.echo(
        f"  Retry: {retry.max_retries} retries, "
        f"{retry.base_delay}s base delay, {retry.max_delay}s max delay"
    )
    typer.echo(f"  Checkpoint: {registry.crawl.checkpoint_backend} ({registry.crawl.checkpoint_path})")
    typer.echo(f"  Gate policy: {registry.crawl.gate_policy.value}")
    typer.echo(f"  Database: {get_database_url()}")
    typer.echo(f"  Redis: {os.environ.get('REDIS_HOST', 'localhost')}:{os.environ.get('REDIS_PORT', '6379')}")
    typer.echo(f"  Delete-all secret: {'set' if os.environ.get('SECRET_KEY') else 'not set'}")

    for provider in registry.list_providers():
        status = "enabled" if provider.enabled else "disabled"
        typer.echo(f"  Provider {provider.name}: {provider.base_url} ({status})")


if __name__ == "__main__":
    app()
