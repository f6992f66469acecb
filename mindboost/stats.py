"""
Statistics kernel: median, sample std, IQR, OLS slope, rounding.

All functions are total: insufficient data yields a defined neutral value,
never an exception or NaN. Downstream aggregators rely on this.
"""

import math
from typing import Iterable

import numpy as np


def _as_array(xs: Iterable[float]) -> np.ndarray:
    return np.asarray(list(xs), dtype=np.float64)


def median(xs: Iterable[float]) -> float:
    """Middle value (odd length) or mean of the two middle values; empty → 0."""
    s = np.sort(_as_array(xs))
    n = len(s)
    if n == 0:
        return 0.0
    m = n // 2
    if n % 2:
        return float(s[m])
    return float((s[m - 1] + s[m]) / 2)


def std(xs: Iterable[float]) -> float:
    """Sample standard deviation (ddof=1); fewer than 2 values → 0."""
    a = _as_array(xs)
    if len(a) < 2:
        return 0.0
    return float(np.std(a, ddof=1))


def iqr(xs: Iterable[float]) -> float:
    """
    Interquartile range with floor-based quartile indices (no interpolation).

    Below 4 values quartiles carry no resolution, so the sample std is
    returned instead.
    """
    a = _as_array(xs)
    n = len(a)
    if n < 4:
        return std(a)
    s = np.sort(a)
    q1 = s[int(math.floor(n * 0.25))]
    q3 = s[int(math.floor(n * 0.75))]
    return float(q3 - q1)


def linear_slope(ys: Iterable[float]) -> float:
    """
    Ordinary least-squares slope of ys against x = 0..n-1.

    Closed form:  (nΣxy − ΣxΣy) / (nΣx² − (Σx)²)
    A zero denominator is replaced by 1. Fewer than 2 points → 0.
    """
    y = _as_array(ys)
    n = len(y)
    if n < 2:
        return 0.0
    x = np.arange(n, dtype=np.float64)
    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = np.dot(x, y)
    sum_x2 = np.dot(x, x)
    denom = n * sum_x2 - sum_x * sum_x
    if denom == 0:
        denom = 1.0
    return float((n * sum_xy - sum_x * sum_y) / denom)


def mean_or(xs: Iterable[float], default: float) -> float:
    """Arithmetic mean, or ``default`` for an empty sequence."""
    a = _as_array(xs)
    if len(a) == 0:
        return float(default)
    return float(a.mean())


def round_half_up(x: float, ndigits: int = 0) -> float:
    """Round half away from zero (2.5 → 3, -2.5 → -3), unlike Python's banker's round."""
    if not math.isfinite(x):
        return 0.0
    factor = 10 ** ndigits
    scaled = abs(x) * factor
    # repr round-trip trims binary noise such as 1.005 * 100 = 100.49999999999999
    scaled = float(f"{scaled:.9f}")
    rounded = math.floor(scaled + 0.5) / factor
    return math.copysign(rounded, x) if rounded else 0.0
