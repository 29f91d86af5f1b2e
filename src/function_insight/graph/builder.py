"""Call graph construction from parsed sources."""

from typing import Iterable

from ..exceptions import GraphConstructionError
from ..logging_config import get_logger
from ..scanning.syntax import FunctionDef, ParsedSource
from .models import CallEdge, CallGraph
from .resolver import CallResolver

logger = get_logger(__name__)


def build_call_graph(functions: Iterable[FunctionDef], calls: Iterable[CallEdge]) -> CallGraph:
    """Build a call graph from definitions and resolved calls.

    Calls whose caller or callee is not a known function are dropped.
    Duplicate edges collapse. A qualified name defined twice with the same
    signature collapses to one node; with different signatures it is an
    ambiguous identity.

    Raises:
        GraphConstructionError: If a qualified name has conflicting signatures
    """
    graph = CallGraph()
    for fn in functions:
        existing = graph.definitions.get(fn.qualified_name)
        if existing is not None:
            if existing.signature != fn.signature:
                raise GraphConstructionError(
                    fn.qualified_name, [existing.signature, fn.signature]
                )
            continue
        graph.definitions[fn.qualified_name] = fn
        graph.add_node(fn.qualified_name)

    dropped = 0
    for edge in calls:
        if edge.caller in graph.nodes and edge.callee in graph.nodes:
            graph.add_edge(edge.caller, edge.callee)
        else:
            dropped += 1

    logger.debug(
        f"Call graph: {len(graph.nodes)} functions, {graph.edge_count} edges "
        f"({dropped} unresolved calls dropped)"
    )
    return graph


def build_from_sources(sources: Iterable[ParsedSource]) -> CallGraph:
    """Resolve every call site across ``sources`` and build the graph."""
    sources = list(sources)
    functions = [fn for src in sources for fn in src.functions]
    resolver = CallResolver(functions, {src.path: src.imports for src in sources})

    edges = []
    for src in sources:
        for call in src.calls:
            callee = resolver.resolve(call)
            if callee is not None:
                edges.append(CallEdge(call.caller, callee))
    return build_call_graph(functions, edges)
