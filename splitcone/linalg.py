"""Dense vector helpers used throughout the solver."""

from __future__ import annotations

import numpy as np


def _vec(v) -> np.ndarray:
    return np.asarray(v, dtype=np.float64).ravel()


def dot(x, y) -> float:
    """Inner product of two vectors of equal length."""
    x, y = _vec(x), _vec(y)
    if x.size != y.size:
        raise ValueError("vectors must have the same length")
    return float(np.dot(x, y))


def norm_sq(v) -> float:
    """Squared Euclidean norm."""
    v = _vec(v)
    return float(np.dot(v, v))


def norm_2(v) -> float:
    """Euclidean norm."""
    return float(np.sqrt(norm_sq(v)))


def norm_inf(v) -> float:
    """Largest absolute entry; zero for an empty vector."""
    v = _vec(v)
    return float(np.max(np.abs(v))) if v.size else 0.0


def norm_diff(a, b) -> float:
    """Euclidean norm of a - b."""
    a, b = _vec(a), _vec(b)
    if a.size != b.size:
        raise ValueError("vectors must have the same length")
    return norm_2(a - b)


def norm_inf_diff(a, b) -> float:
    """Infinity norm of a - b."""
    a, b = _vec(a), _vec(b)
    if a.size != b.size:
        raise ValueError("vectors must have the same length")
    return norm_inf(a - b)


def mean(x) -> float:
    """Arithmetic mean; NaN for an empty vector."""
    x = _vec(x)
    if not x.size:
        return float("nan")
    return float(np.sum(x) / x.size)


def add_scaled_array(a, b, sc) -> np.ndarray:
    """Return a + sc * b."""
    a, b = _vec(a), _vec(b)
    if a.size != b.size:
        raise ValueError("vectors must have the same length")
    return a + sc * b