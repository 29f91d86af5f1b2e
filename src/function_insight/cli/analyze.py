"""Analyze command: full pipeline for one function."""

from pathlib import Path
from typing import Optional

import typer

from ..core import FunctionIntelligencePipeline
from ..exceptions import FunctionInsightError
from ..logging_config import setup_logging
from . import app
from ._common import console, render_intelligence, resolve_config


@app.command()
def analyze(
    root: Path = typer.Argument(
        ...,
        help="Repository root",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    file: str = typer.Argument(..., help="File containing the function, relative to ROOT"),
    function: str = typer.Argument(..., help="Function name, e.g. parse or Parser.parse"),
    commit: Optional[str] = typer.Option(
        None,
        "--commit",
        "-c",
        help="Revision to analyze (default: HEAD, fingerprinted by file content)",
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
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
):
    """
    Explain a function: intent, dependencies, complexity and change risk.

    A previous analysis is reused when it is younger than the cache TTL and
    the function's fingerprint is unchanged.

    [bold cyan]Examples:[/bold cyan]

      function-insight analyze . src/app/service.py Service.run

      function-insight analyze . lib/util.js slugify --commit abc123 --json
    """
    setup_logging(verbose=verbose, quiet=quiet)
    try:
        settings = resolve_config(config, verbose=verbose, quiet=quiet)
        pipeline = FunctionIntelligencePipeline(settings)
        if json_output:
            record = pipeline.analyze(root, file, function, commit)
        else:
            with console.status(f"Analyzing {function}..."):
                record = pipeline.analyze(root, file, function, commit)
    except FunctionInsightError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        print(record.to_json())
    else:
        render_intelligence(record)
