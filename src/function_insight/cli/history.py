"""History command: list stored analyses of a function."""

import json
from pathlib import Path
from typing import Optional

import typer

from ..core import FunctionIntelligencePipeline
from ..exceptions import FunctionInsightError
from . import app
from ._common import RISK_STYLES, console, format_timestamp, resolve_config


@app.command()
def history(
    root: Path = typer.Argument(
        ...,
        help="Repository root",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    function: str = typer.Argument(..., help="Function name"),
    file: Optional[str] = typer.Option(
        None,
        "--file",
        "-f",
        help="Only analyses of the function in this file",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to a function-insight.toml file",
        exists=True,
        dir_okay=False,
    ),
):
    """
    List every stored analysis of a function, oldest first.

    [bold cyan]Examples:[/bold cyan]

      function-insight history . Service.run

      function-insight history . slugify --file lib/util.js --json
    """
    try:
        settings = resolve_config(config)
        records = FunctionIntelligencePipeline(settings).history(root, function, file)
    except FunctionInsightError as e:
        console.print(f"[red]Error reading history:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps([r.to_dict() for r in records], indent=2, sort_keys=True))
        return

    if not records:
        console.print(
            "[yellow]No history found.[/yellow] "
            "Run [bold]function-insight analyze[/bold] first."
        )
        raise typer.Exit(0)

    from rich.table import Table

    table = Table(title=f"Analysis History: {function}", show_lines=False, pad_edge=True)
    table.add_column("Timestamp", style="green")
    table.add_column("File", style="cyan")
    table.add_column("Fingerprint", style="dim")
    table.add_column("Score", justify="right")
    table.add_column("Risk")
    table.add_column("", style="dim")

    for r in records:
        style = RISK_STYLES[r.risk_level]
        table.add_row(
            format_timestamp(r.created_at.isoformat()),
            r.ref.file_path,
            r.fingerprint[:20],
            f"{r.stability.score:.3f}",
            f"[{style}]{r.risk_level.value}[/{style}]",
            "partial" if not r.fully_analyzed else "",
        )

    console.print()
    console.print(table)
    console.print()
