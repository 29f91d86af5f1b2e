"""Stability scoring: weighted composite of normalized metrics.

    score = 0.3 * complexity + 0.3 * modification_frequency
          + 0.2 * call_site_count + 0.2 * lines_of_code

Classification: score < 0.4 Stable, < 0.7 ModerateRisk, else HighRisk.
"""

import numpy as np

from ..config import DEFAULT_RANGES, NormalizationRanges
from ..models import ComplexityMetrics, RiskLevel, StabilityScore
from .normalization import normalize

WEIGHTS: dict[str, float] = {
    "complexity": 0.3,
    "modification_frequency": 0.3,
    "call_site_count": 0.2,
    "lines_of_code": 0.2,
}

MODERATE_THRESHOLD = 0.4
HIGH_THRESHOLD = 0.7


def _raw_values(metrics: ComplexityMetrics) -> dict[str, float]:
    return {
        "complexity": metrics.cyclomatic_complexity,
        "modification_frequency": metrics.modification_frequency,
        "call_site_count": metrics.call_site_count,
        "lines_of_code": metrics.lines_of_code,
    }


def classify(score: float) -> RiskLevel:
    if score < MODERATE_THRESHOLD:
        return RiskLevel.STABLE
    if score < HIGH_THRESHOLD:
        return RiskLevel.MODERATE_RISK
    return RiskLevel.HIGH_RISK


def score(metrics: ComplexityMetrics, ranges: NormalizationRanges = DEFAULT_RANGES) -> StabilityScore:
    """Score a function's metrics. Pure: same inputs, same output."""
    raw = _raw_values(metrics)
    names = list(WEIGHTS)
    bounds = [getattr(ranges, name) for name in names]
    normalized = normalize(
        [raw[name] for name in names],
        [low for low, _ in bounds],
        [high for _, high in bounds],
    )
    weights = np.array([WEIGHTS[name] for name in names])
    total = float(np.clip(np.dot(weights, normalized), 0.0, 1.0))
    return StabilityScore(
        score=total,
        risk_level=classify(total),
        normalized={name: float(v) for name, v in zip(names, normalized)},
    )
