"""Stability scoring."""

from .complexity import gather_metrics
from .normalization import normalize, normalize_one
from .stability import WEIGHTS, classify, score

__all__ = ["WEIGHTS", "classify", "gather_metrics", "normalize", "normalize_one", "score"]
