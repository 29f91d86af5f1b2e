"""Call graph data model.

Nodes are qualified function identifiers (``path::Class.method``). Edges are
directed caller -> callee and are stored twice, once per adjacency view, so
both directions can be walked without a scan.
"""

from dataclasses import dataclass, field

from ..scanning.syntax import FunctionDef


@dataclass(frozen=True)
class CallEdge:
    """A resolved call: ``caller`` invokes ``callee``."""

    caller: str
    callee: str


@dataclass
class CallGraph:
    """Directed call graph with forward and reverse adjacency.

    Every edge appears in both ``forward[caller]`` and ``reverse[callee]``.
    Multi-edges collapse (adjacency values are sets); self-loops are kept.
    Treat as read-only once built.
    """

    nodes: set[str] = field(default_factory=set)
    forward: dict[str, set[str]] = field(default_factory=dict)
    reverse: dict[str, set[str]] = field(default_factory=dict)
    definitions: dict[str, FunctionDef] = field(default_factory=dict)

    def add_node(self, name: str) -> None:
        self.nodes.add(name)
        self.forward.setdefault(name, set())
        self.reverse.setdefault(name, set())

    def add_edge(self, caller: str, callee: str) -> None:
        self.forward[caller].add(callee)
        self.reverse[callee].add(caller)

    @property
    def edge_count(self) -> int:
        return sum(len(callees) for callees in self.forward.values())

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def edges(self) -> list[CallEdge]:
        """All edges, sorted."""
        return [
            CallEdge(caller, callee)
            for caller in sorted(self.forward)
            for callee in sorted(self.forward[caller])
        ]
