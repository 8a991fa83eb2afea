"""Command line interface for ReliefFinder."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from relieffinder.cache.store import CacheStore
from relieffinder.config import AppConfig
from relieffinder.models import InvalidCategoryError, OpenStatus
from relieffinder.pipeline.enricher import run_batch
from relieffinder.web.app import app as web_app


console = Console()
app = typer.Typer(help="ReliefFinder - open-now status for crisis resources")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _format_status(value: OpenStatus) -> str:
    if value is None:
        return "[dim]unknown[/dim]"
    return "[green]open[/green]" if value else "[red]closed[/red]"


@app.command()
def enrich(
    category: str = typer.Argument(..., help="One of: shelter, food_bank, clinic"),
    cache: Path = typer.Option(None, "--cache", help="Open-status cache file"),
    catalog_dir: Path = typer.Option(None, "--catalog-dir", help="Directory with catalog JSON files"),
    timeout: Optional[float] = typer.Option(None, help="Per-request Places timeout in seconds"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Refresh open-now status for every location in a category."""
    _setup_logging(verbose)
    config = AppConfig.from_env(
        cache_path=cache,
        catalog_dir=catalog_dir,
        lookup_timeout=timeout,
    )

    try:
        result = run_batch(category, config, base_dir=Path.cwd())
    except InvalidCategoryError as exc:
        raise typer.BadParameter(str(exc), param_hint="CATEGORY") from exc

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.key_present:
        console.print("[yellow]No Places API key configured; using cached and static values.[/yellow]")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Open now")
    table.add_column("Method")
    table.add_column("Error")

    for item in result.items:
        record = result.diagnostics.get(item.id)
        table.add_row(
            item.id,
            item.name,
            _format_status(item.open_now),
            (record.method if record else None) or "-",
            (record.error if record else None) or "",
        )

    console.print(table)
    summary = f"Updated: {result.updated_count} of {len(result.items)}"
    if result.updated_count and not result.persisted:
        summary += " [yellow](cache not written)[/yellow]"
    console.print(summary)


@app.command()
def status(
    cache: Path = typer.Option(None, "--cache", help="Open-status cache file"),
) -> None:
    """Show the last-known open status stored in the cache."""
    config = AppConfig.from_env(cache_path=cache)
    resolved = config.resolve_cache_path(Path.cwd())

    if not resolved.exists():
        console.print(f"[yellow]No cache found at {resolved}.[/yellow]")
        return

    document = CacheStore(resolved).load()
    if not document:
        console.print("[yellow]Cache is empty.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Open now")
    table.add_column("Last updated")
    table.add_column("Method")
    table.add_column("Place ID")

    for item_id, entry in sorted(document.items()):
        table.add_row(
            item_id,
            _format_status(entry.open_now),
            entry.last_updated or "-",
            entry.method or "-",
            entry.place_id or "-",
        )
    console.print(table)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    config = AppConfig.from_env()
    console.print(
        f"Starting ReliefFinder API on http://{host}:{port} "
        f"(cache: {config.resolve_cache_path(Path.cwd())})"
    )
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
