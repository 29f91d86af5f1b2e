"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import AnalysisConfig, load_config
from ..models import FunctionIntelligence, RiskLevel

console = Console()

RISK_STYLES = {
    RiskLevel.STABLE: "green",
    RiskLevel.MODERATE_RISK: "yellow",
    RiskLevel.HIGH_RISK: "red",
}


def resolve_config(
    config: Optional[Path] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> AnalysisConfig:
    """Build configuration from CLI options."""
    overrides = {}
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)


def format_timestamp(ts: str) -> str:
    """Trim an ISO timestamp to date + time (no microseconds/timezone)."""
    ts = ts.replace("T", " ")
    if "+" in ts:
        ts = ts[: ts.index("+")]
    if "." in ts:
        ts = ts[: ts.index(".")]
    return ts


def render_intelligence(record: FunctionIntelligence) -> None:
    """Human-readable report for one analysis."""
    ref = record.ref
    style = RISK_STYLES[record.risk_level]

    console.print()
    console.print(f"[bold cyan]{ref.function_name}[/bold cyan] [dim]in {ref.file_path}[/dim]")
    console.print(
        f"Risk: [{style}]{record.risk_level.value}[/{style}] "
        f"(score {record.stability.score:.3f})  "
        f"[dim]{ref.fingerprint[:20]} · {format_timestamp(record.created_at.isoformat())}[/dim]"
    )

    metrics = Table(show_header=False, box=None, pad_edge=False)
    metrics.add_column(style="dim")
    metrics.add_column(justify="right")
    m = record.metrics
    metrics.add_row("Cyclomatic complexity", str(m.cyclomatic_complexity))
    metrics.add_row("Lines of code", str(m.lines_of_code))
    metrics.add_row("Parameters", str(m.parameter_count))
    metrics.add_row("Modifications", str(m.modification_frequency))
    metrics.add_row("Call sites", str(m.call_site_count))
    metrics.add_row("Impact radius", str(record.dependencies.impact_radius_size))
    console.print()
    console.print(metrics)

    n = record.narrative
    console.print()
    console.print(Panel(n.intent_summary, title="Intent", title_align="left"))
    console.print(Panel(n.dependency_overview, title="Dependencies", title_align="left"))
    console.print(Panel(n.risk_assessment, title="Risk", title_align="left"))

    if record.recommendations:
        console.print("[bold]Recommendations[/bold]")
        for i, rec in enumerate(record.recommendations, 1):
            console.print(f"  {i}. {rec}")

    deps = record.dependencies
    if deps.upstream or deps.downstream:
        console.print()
        if deps.upstream:
            console.print(f"[bold]Callers ({len(deps.upstream)})[/bold]")
            for name in deps.upstream:
                console.print(f"  [dim]←[/dim] {name}")
        if deps.downstream:
            console.print(f"[bold]Callees ({len(deps.downstream)})[/bold]")
            for name in deps.downstream:
                console.print(f"  [dim]→[/dim] {name}")

    if record.degradations:
        console.print()
        console.print("[yellow]Partially analyzed:[/yellow]")
        for note in record.degradations:
            console.print(f"  [yellow]![/yellow] {note.stage}: {note.error_type}: {note.reason}")
    console.print()
