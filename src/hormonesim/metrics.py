# src/hormonesim/metrics.py
import logging
from typing import Optional, Tuple

import numpy as np
from scipy import stats

logger = logging.getLogger(__name__)


def finite(t: np.ndarray, C: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Drop samples whose time or value is NaN/inf (treated as no data)."""
    t = np.asarray(t, dtype=float)
    C = np.asarray(C, dtype=float)
    mask = np.isfinite(t) & np.isfinite(C)
    if not mask.all():
        logger.warning("Ignoring %d non-finite samples", int((~mask).sum()))
    return t[mask], C[mask]


def _values(C: np.ndarray) -> np.ndarray:
    C = np.asarray(C, dtype=float)
    return C[np.isfinite(C)]


def cmax(C: np.ndarray) -> float:
    """Maximum concentration, NaN when there is no data."""
    v = _values(C)
    return float(np.max(v)) if v.size else float("nan")


def cmin(C: np.ndarray) -> float:
    v = _values(C)
    return float(np.min(v)) if v.size else float("nan")


def tmax(t: np.ndarray, C: np.ndarray) -> float:
    """Day of maximum concentration."""
    return cmax_tmax(t, C)[1]


def cmax_tmax(t: np.ndarray, C: np.ndarray) -> Tuple[float, float]:
    """Return Cmax and the day it occurs (first occurrence)."""
    t, C = finite(t, C)
    if C.size == 0:
        return float("nan"), float("nan")
    idx = int(np.argmax(C))
    return float(C[idx]), float(t[idx])


def auc_trapz(t: np.ndarray, C: np.ndarray) -> float:
    """Area under the curve via trapezoidal rule (unit·day)."""
    t, C = finite(t, C)
    if C.size < 2:
        return 0.0
    return float(np.trapezoid(C, t))


def cavg(C: np.ndarray) -> float:
    """Mean concentration over the series."""
    v = _values(C)
    return float(np.mean(v)) if v.size else float("nan")


def _last_interval(t: np.ndarray, C: np.ndarray, interval_d: Optional[float]) -> np.ndarray:
    """
    Samples of the last full dosing interval measured from t[0].
    Falls back to the whole series when no full interval fits.
    """
    if not interval_d or interval_d <= 0 or t.size == 0:
        return C
    last_edge = t[0] + ((t[-1] - t[0]) // interval_d) * interval_d
    start = last_edge - interval_d
    if start < t[0]:
        return C
    return C[(t >= start) & (t <= last_edge)]


def peak_to_trough_ratio(t: np.ndarray, C: np.ndarray, interval_d: Optional[float] = None) -> float:
    """
    Peak-to-trough ratio Cmax / Cmin, over the last full dosing interval when
    interval_d is given; inf when the trough is zero.
    """
    t, C = finite(t, C)
    Cw = _last_interval(t, C, interval_d)
    if Cw.size == 0:
        return float("nan")
    lo = float(np.min(Cw))
    if lo <= 0:
        return float("inf")
    return float(np.max(Cw)) / lo


def fluctuation_index(t: np.ndarray, C: np.ndarray, interval_d: Optional[float] = None) -> float:
    """Fluctuation index (Cmax - Cmin) / Cavg."""
    t, C = finite(t, C)
    Cw = _last_interval(t, C, interval_d)
    if Cw.size == 0:
        return float("nan")
    avg = float(np.mean(Cw))
    if avg == 0.0:
        return float("inf")
    return (float(np.max(Cw)) - float(np.min(Cw))) / avg


def rmse(predicted, measured) -> float:
    """Root-mean-square error between paired series; NaN for no pairs."""
    p = np.asarray(predicted, dtype=float)
    m = np.asarray(measured, dtype=float)
    if p.size == 0:
        return float("nan")
    return float(np.sqrt(np.mean((p - m) ** 2)))


def pearson(predicted, measured) -> Optional[float]:
    """
    Pearson correlation of paired series.
    None with fewer than two pairs or when either series is constant.
    """
    p = np.asarray(predicted, dtype=float)
    m = np.asarray(measured, dtype=float)
    if p.size < 2 or np.ptp(p) == 0 or np.ptp(m) == 0:
        return None
    r, _ = stats.pearsonr(p, m)
    return float(r)


def find_peak(t: np.ndarray, C: np.ndarray) -> Optional[Tuple[float, float]]:
    """(day, level) of the series maximum, or None when the series has no data."""
    level, day = cmax_tmax(t, C)
    if np.isnan(level):
        return None
    return day, level
