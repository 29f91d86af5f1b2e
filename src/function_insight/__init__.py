"""
Function Insight - what a function does, what depends on it, and how risky
it is to change.

Fuses version-control history, call-graph structure and complexity metrics
into one synthesized report per function.
"""

__version__ = "0.1.0"

from .api import analyze, history
from .models import FunctionIntelligence, FunctionRef, RiskLevel

__all__ = [
    "analyze",
    "history",
    "FunctionIntelligence",
    "FunctionRef",
    "RiskLevel",
]
