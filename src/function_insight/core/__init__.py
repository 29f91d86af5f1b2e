"""Pipeline orchestration."""

from .fingerprint import compute_fingerprint, repository_id
from .orchestrator import FunctionIntelligencePipeline
from .structure import StructuralAnalyzer, StructuralResult, find_target

__all__ = [
    "FunctionIntelligencePipeline",
    "StructuralAnalyzer",
    "StructuralResult",
    "compute_fingerprint",
    "find_target",
    "repository_id",
]
