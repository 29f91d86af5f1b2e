"""Bounded prompt construction.

The prompt is assembled from three sections and capped at a token budget.
When it does not fit, content is dropped in this order until it does:

    1. commit history, oldest commits first (a commit's diff excerpt goes
       with it)
    2. impact-radius entries, farthest from the target first
    3. (last resort) tails of the direct caller/callee lists

Complexity metrics are never dropped. Tokens are counted with tiktoken
(``count_tokens``): lines are costed individually while trimming, and the
assembled text is counted again before it is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Sequence

from ..logging_config import get_logger
from ..models import ComplexityMetrics, FunctionRef, StabilityScore
from ..temporal.models import CommitRecord
from .tokens import count_tokens

logger = get_logger(__name__)

REPLY_KEYS = (
    "intent_summary",
    "dependency_overview",
    "risk_assessment",
    "refactoring_recommendations",
)

# Newest commits that carry a diff excerpt, and its length in changed lines
DIFF_EXCERPT_COMMITS = 3
DIFF_EXCERPT_LINES = 12

_INSTRUCTIONS = """\
## Task
Explain why this function exists, how it evolved, what depends on it and how
risky it is to change. Reply with a single JSON object with exactly these keys:
  "intent_summary": string, the purpose of the function and how it evolved
  "dependency_overview": string, what calls it and what it relies on
  "risk_assessment": string, how risky a change is and why
  "refactoring_recommendations": array of strings, most important first"""


@dataclass(frozen=True)
class NarrativeInputs:
    """History signals: commits oldest first."""

    commits: Sequence[CommitRecord] = ()


@dataclass(frozen=True)
class StructuralInputs:
    """Call-graph signals for the target.

    ``impact_layers[0]`` holds the direct neighbours, each later layer is one
    hop farther away.
    """

    ref: FunctionRef
    params: tuple[str, ...] = ()
    upstream: tuple[str, ...] = ()
    downstream: tuple[str, ...] = ()
    impact_layers: Sequence[frozenset[str]] = ()

    @property
    def impact_radius_size(self) -> int:
        return sum(len(layer) for layer in self.impact_layers)


@dataclass(frozen=True)
class ComplexityInputs:
    metrics: ComplexityMetrics
    stability: StabilityScore


@dataclass
class Prompt:
    """A built prompt plus what was cut to fit the budget."""

    text: str
    token_count: int
    commits_included: int = 0
    commits_dropped: int = 0
    radius_dropped: int = 0
    neighbours_dropped: int = 0

    @property
    def truncated(self) -> bool:
        return bool(self.commits_dropped or self.radius_dropped or self.neighbours_dropped)


@lru_cache(maxsize=8192)
def _line_tokens(line: str) -> int:
    # +1 for the joining newline
    return count_tokens(line) + 1


def _lines_cost(lines: Sequence[str]) -> int:
    return sum(_line_tokens(line) for line in lines)


def diff_excerpt(diff: str, limit: int = DIFF_EXCERPT_LINES) -> list[str]:
    """Changed lines of a function-scoped patch, indented for the prompt."""
    changed = [
        line
        for line in diff.splitlines()
        if line[:1] in "+-" and not line.startswith(("+++", "---"))
    ]
    lines = [f"    {line.rstrip()}" for line in changed[:limit]]
    if len(changed) > limit:
        lines.append(f"    ... {len(changed) - limit} more changed lines")
    return lines


def _format_commit(commit: CommitRecord, with_diff: bool) -> list[str]:
    refs = f" [{', '.join(commit.issue_refs)}]" if commit.issue_refs else ""
    date = commit.timestamp.strftime("%Y-%m-%d")
    lines = [f"- {date} {commit.short_hash} {commit.author}: {commit.subject}{refs}"]
    if with_diff and commit.diff:
        lines.extend(diff_excerpt(commit.diff))
    return lines


class PromptBuilder:
    """Compose the synthesis prompt within ``token_budget`` tokens."""

    def __init__(self, token_budget: int = 4000):
        self.token_budget = token_budget

    def build(
        self,
        narrative: NarrativeInputs,
        structural: StructuralInputs,
        complexity: ComplexityInputs,
    ) -> Prompt:
        budget = self.token_budget
        header = self._header(structural)
        metrics = self._complexity_lines(complexity)
        instructions = _INSTRUCTIONS.split("\n")

        callers = list(structural.upstream)
        callees = list(structural.downstream)
        direct = set(callers) | set(callees)
        # Farthest entries last, so popping from the end drops them first
        radius: list[tuple[int, str]] = []
        for distance, layer in enumerate(structural.impact_layers, start=1):
            for name in sorted(layer - direct):
                radius.append((distance, name))

        # Newest first, so popping from the end drops the oldest
        newest_first = list(reversed(list(narrative.commits)))
        entries = [
            _format_commit(commit, with_diff=index < DIFF_EXCERPT_COMMITS)
            for index, commit in enumerate(newest_first)
        ]

        def structure_lines() -> list[str]:
            lines = ["## Structure"]
            lines.append(f"Direct callers ({len(structural.upstream)}):")
            lines.extend(f"  {name}" for name in callers)
            if len(callers) < len(structural.upstream):
                lines.append(f"  ... and {len(structural.upstream) - len(callers)} more")
            lines.append(f"Direct callees ({len(structural.downstream)}):")
            lines.extend(f"  {name}" for name in callees)
            if len(callees) < len(structural.downstream):
                lines.append(f"  ... and {len(structural.downstream) - len(callees)} more")
            lines.append(f"Impact radius: {structural.impact_radius_size} functions")
            lines.extend(f"  [distance {d}] {name}" for d, name in radius)
            return lines

        def history_lines() -> list[str]:
            total = len(narrative.commits)
            lines = [f"## History ({len(entries)} of {total} commits, newest first)"]
            for entry in entries:
                lines.extend(entry)
            return lines

        def render() -> str:
            return "\n".join(header + metrics + structure_lines() + history_lines() + instructions)

        prompt = Prompt(text="", token_count=0)

        def drop_one() -> bool:
            if entries:
                entries.pop()
                prompt.commits_dropped += 1
            elif radius:
                radius.pop()
                prompt.radius_dropped += 1
            elif callers or callees:
                longer = callers if len(callers) >= len(callees) else callees
                longer.pop()
                prompt.neighbours_dropped += 1
            else:
                return False
            return True

        fixed_cost = _lines_cost(header) + _lines_cost(metrics) + _lines_cost(instructions)
        self._trim(lambda: fixed_cost + _lines_cost(structure_lines()) + _lines_cost(history_lines()), drop_one)

        text = render()
        tokens = count_tokens(text)
        # Line costs are close to, not exactly, the count of the joined text
        while tokens > budget and drop_one():
            text = render()
            tokens = count_tokens(text)

        prompt.text = text
        prompt.token_count = tokens
        prompt.commits_included = len(entries)

        if prompt.truncated:
            logger.debug(
                f"Prompt truncated to {prompt.token_count} tokens: dropped "
                f"{prompt.commits_dropped} commits, {prompt.radius_dropped} radius entries, "
                f"{prompt.neighbours_dropped} direct neighbours"
            )
        if prompt.token_count > budget:
            logger.warning(
                f"Prompt exceeds token budget ({prompt.token_count} > {budget}) "
                "after truncation"
            )
        return prompt

    def _trim(self, cost: Callable[[], int], drop_one: Callable[[], bool]) -> None:
        while cost() > self.token_budget and drop_one():
            pass

    @staticmethod
    def _header(structural: StructuralInputs) -> list[str]:
        ref = structural.ref
        return [
            f"# Function: {ref.function_name}",
            f"File: {ref.file_path}",
            f"Parameters: ({', '.join(structural.params)})",
            "",
        ]

    @staticmethod
    def _complexity_lines(complexity: ComplexityInputs) -> list[str]:
        m = complexity.metrics
        s = complexity.stability
        return [
            "## Complexity",
            f"cyclomatic_complexity: {m.cyclomatic_complexity}",
            f"lines_of_code: {m.lines_of_code}",
            f"parameter_count: {m.parameter_count}",
            f"modification_frequency: {m.modification_frequency}",
            f"call_site_count: {m.call_site_count}",
            f"stability_score: {s.score:.3f} ({s.risk_level.value})",
            "",
        ]
