"""Min-max normalization of raw metrics into [0, 1]."""

from typing import Sequence, Union

import numpy as np


def normalize(
    values: Union[Sequence[float], np.ndarray],
    lows: Union[Sequence[float], np.ndarray],
    highs: Union[Sequence[float], np.ndarray],
) -> np.ndarray:
    """
    Element-wise ``clamp((v - low) / (high - low), 0, 1)``.

    A degenerate range (``high == low``) normalizes to 0.

    Args:
        values: Raw metric values
        lows: Range minimum per value
        highs: Range maximum per value

    Returns:
        Array of normalized values
    """
    v = np.asarray(values, dtype=float)
    lo = np.asarray(lows, dtype=float)
    hi = np.asarray(highs, dtype=float)
    span = hi - lo
    safe_span = np.where(span > 0, span, 1.0)
    scaled = np.where(span > 0, (v - lo) / safe_span, 0.0)
    return np.clip(scaled, 0.0, 1.0)


def normalize_one(value: float, low: float, high: float) -> float:
    """Scalar form of :func:`normalize`."""
    return float(normalize([value], [low], [high])[0])
