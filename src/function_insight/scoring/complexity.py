"""Assemble ComplexityMetrics from the outputs of the analysis stages."""

from typing import Collection, Sequence

from ..models import ComplexityMetrics
from ..scanning.syntax import FunctionDef
from ..temporal.models import CommitRecord


def gather_metrics(
    function: FunctionDef,
    commits: Sequence[CommitRecord],
    callers: Collection[str],
) -> ComplexityMetrics:
    """Combine parse metrics with history and call-graph inputs.

    Args:
        function: Target definition from the structural stage
        commits: History (empty when the history stage degraded)
        callers: Direct callers of the target in the call graph
    """
    return ComplexityMetrics(
        cyclomatic_complexity=function.cyclomatic_complexity,
        lines_of_code=function.lines_of_code,
        parameter_count=len(function.params),
        modification_frequency=len(commits),
        call_site_count=len(callers),
    )
