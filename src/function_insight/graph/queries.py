"""Read-only queries over a CallGraph.

A target absent from the graph yields empty results, never an error.
"""

from collections import deque

from .models import CallGraph


def upstream(graph: CallGraph, target: str) -> set[str]:
    """Direct callers of ``target``."""
    return set(graph.reverse.get(target, ()))


def downstream(graph: CallGraph, target: str) -> set[str]:
    """Direct callees of ``target``."""
    return set(graph.forward.get(target, ()))


def impact_radius(graph: CallGraph, target: str) -> set[str]:
    """Functions reachable from ``target`` along edges in either direction.

    BFS over the union of forward and reverse adjacency; ``target`` itself
    is excluded even when it lies on a cycle.
    """
    if target not in graph.nodes:
        return set()

    visited: set[str] = {target}
    queue: deque[str] = deque([target])
    while queue:
        node = queue.popleft()
        for neighbor in graph.forward.get(node, ()) | graph.reverse.get(node, ()):
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append(neighbor)
    visited.discard(target)
    return visited


def impact_layers(graph: CallGraph, target: str) -> list[set[str]]:
    """Impact radius grouped by BFS distance (index 0 = direct neighbours)."""
    if target not in graph.nodes:
        return []

    visited: set[str] = {target}
    layers: list[set[str]] = []
    frontier = {target}
    while frontier:
        nxt: set[str] = set()
        for node in frontier:
            nxt |= (graph.forward.get(node, set()) | graph.reverse.get(node, set())) - visited
        visited |= nxt
        if nxt:
            layers.append(nxt)
        frontier = nxt
    return layers
