"""CLI entry point: registers all subcommands."""

import typer

from ._common import console

app = typer.Typer(
    name="function-insight",
    help="Function Insight - history, dependencies and change risk for a single function",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from .analyze import analyze as _analyze  # noqa: F401, E402
from .cache import cache_clear as _cache_clear, cache_info as _cache_info  # noqa: F401, E402
from .history import history as _history  # noqa: F401, E402

__all__ = ["app", "console"]
