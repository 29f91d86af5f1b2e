"""Call graph construction and queries."""

from .builder import build_call_graph, build_from_sources
from .models import CallEdge, CallGraph
from .queries import downstream, impact_layers, impact_radius, upstream
from .resolver import CallResolver

__all__ = [
    "CallEdge",
    "CallGraph",
    "CallResolver",
    "build_call_graph",
    "build_from_sources",
    "upstream",
    "downstream",
    "impact_radius",
    "impact_layers",
]
