"""Cache management commands."""

from pathlib import Path
from typing import Optional

import typer

from ..cache import ParseCache
from ..exceptions import CacheError
from ..storage import BlobStore, IntelligenceDB
from . import app
from ._common import console, resolve_config

_ROOT = typer.Argument(
    Path("."),
    help="Repository root",
    exists=True,
    file_okay=False,
    dir_okay=True,
    resolve_path=True,
)
_CONFIG = typer.Option(None, "--config", help="Path to a function-insight.toml file")


@app.command()
def cache_info(root: Path = _ROOT, config: Optional[Path] = _CONFIG):
    """Show stored analyses, blobs and parse cache statistics."""
    settings = resolve_config(config)
    store_dir = settings.resolve_store_dir(root)

    console.print("[bold cyan]Function Insight Cache Info[/bold cyan]")
    console.print()
    console.print(f"Store: [blue]{store_dir}[/blue]")
    console.print(f"TTL: [yellow]{settings.cache_ttl_hours}h[/yellow]")

    if not store_dir.exists():
        console.print("[yellow]No store yet[/yellow]")
        raise typer.Exit(0)

    try:
        with IntelligenceDB(store_dir) as db:
            stats = db.stats()
    except CacheError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(
        f"Analyses: [yellow]{stats['analyses']}[/yellow] "
        f"for [yellow]{stats['functions']}[/yellow] functions"
    )
    if stats["newest"]:
        console.print(f"Newest: [green]{stats['newest']}[/green]")

    blob_stats = BlobStore(store_dir).stats()
    console.print(
        f"Blobs: [yellow]{blob_stats['blobs']}[/yellow] "
        f"([yellow]{blob_stats['volume']} bytes[/yellow])"
    )

    parse_cache = ParseCache(str(store_dir / "parse-cache"), enabled=settings.parse_cache_enabled)
    try:
        pc = parse_cache.stats()
    finally:
        parse_cache.close()
    if pc.get("enabled"):
        console.print(
            f"Parse cache: [green]Enabled[/green], [yellow]{pc.get('size', 0)}[/yellow] entries, "
            f"[yellow]{pc.get('volume', 0)} bytes[/yellow]"
        )
    else:
        console.print("Parse cache: [red]Disabled[/red]")


@app.command()
def cache_clear(root: Path = _ROOT, config: Optional[Path] = _CONFIG):
    """Delete stored analyses, blobs and cached parses."""
    settings = resolve_config(config)
    store_dir = settings.resolve_store_dir(root)

    if not store_dir.exists():
        console.print("[yellow]Nothing to clear[/yellow]")
        raise typer.Exit(0)

    try:
        with IntelligenceDB(store_dir) as db:
            analyses = db.clear()
    except CacheError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    blobs = BlobStore(store_dir).clear()
    with ParseCache(str(store_dir / "parse-cache")) as parse_cache:
        parsed = parse_cache.clear()

    console.print(
        f"[green]Cache cleared:[/green] {analyses} analyses, {blobs} blobs, {parsed} parsed files"
    )
