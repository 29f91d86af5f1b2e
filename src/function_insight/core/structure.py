"""Structural stage: parse the codebase, build the call graph, query it."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from ..exceptions import AnalysisError, FunctionNotFoundError
from ..graph import CallGraph, build_from_sources, downstream, impact_layers, upstream
from ..logging_config import get_logger
from ..scanning import FunctionDef, ParsedSource, SourceExtractor, SourceTree

logger = get_logger(__name__)


@dataclass
class StructuralResult:
    """Everything later stages need from the structural stage."""

    target: FunctionDef
    graph: CallGraph
    upstream: tuple[str, ...]
    downstream: tuple[str, ...]
    impact_layers: list[frozenset[str]]
    skipped: list[AnalysisError] = field(default_factory=list)

    @property
    def impact_radius(self) -> set[str]:
        return set().union(*self.impact_layers) if self.impact_layers else set()

    def snapshot(self) -> dict:
        """JSON-ready neighbourhood of the target for the blob store."""
        radius = self.impact_radius
        members = radius | {self.target.qualified_name}
        return {
            "target": self.target.qualified_name,
            "upstream": list(self.upstream),
            "downstream": list(self.downstream),
            "impact_radius": sorted(radius),
            "edges": [
                [edge.caller, edge.callee]
                for edge in self.graph.edges()
                if edge.caller in members and edge.callee in members
            ],
        }


def find_target(parsed: ParsedSource, function_name: str) -> FunctionDef:
    """Resolve ``function_name`` inside one parsed file.

    Raises:
        FunctionNotFoundError: If there is no match, or a bare name matches
            several definitions
    """
    matches = parsed.find(function_name)
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise FunctionNotFoundError(
            parsed.path, function_name, sorted(fn.local_name for fn in parsed.functions)[:20]
        )
    raise FunctionNotFoundError(
        parsed.path, function_name, sorted(fn.local_name for fn in matches)
    )


class StructuralAnalyzer:
    """Run the structural stage against one version of the codebase."""

    def __init__(self, extractor: SourceExtractor):
        self.extractor = extractor

    def analyze(
        self, root: Union[SourceTree, Path], file_path: str, function_name: str
    ) -> StructuralResult:
        """Parse ``root`` (the working tree or a past revision) and query its graph.

        Raises:
            UnsupportedLanguageError: No parser for the target file
            ParseError: The target file cannot be parsed
            FunctionNotFoundError: The function is not defined in the target file
            GraphConstructionError: Ambiguous function identity
        """
        target_source = self.extractor.parse_file(root, file_path)
        target = find_target(target_source, function_name)

        extraction = self.extractor.extract_all(root, exclude={file_path})
        sources = [target_source, *extraction.sources.values()]
        graph = build_from_sources(sources)

        name = target.qualified_name
        layers = [frozenset(layer) for layer in impact_layers(graph, name)]
        result = StructuralResult(
            target=target,
            graph=graph,
            upstream=tuple(sorted(upstream(graph, name))),
            downstream=tuple(sorted(downstream(graph, name))),
            impact_layers=layers,
            skipped=list(extraction.errors),
        )
        logger.debug(
            f"{name}: {len(result.upstream)} callers, {len(result.downstream)} callees, "
            f"impact radius {sum(len(layer) for layer in layers)}"
        )
        return result
