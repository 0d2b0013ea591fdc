from collections import defaultdict
from datetime import datetime, timedelta

import numpy as np

from .config import MAX_QUERY_POINTS
from .errors import InvalidConfigurationError
from .types import DoseEvent, TimeWindow

_SECONDS_PER_DAY = 24 * 3600


def split_events_by_compound(events) -> dict[str, tuple[DoseEvent, ...]]:
    """
    Group dose events by compound_id, each group in chronological order.
    """
    buckets: dict[str, list[DoseEvent]] = defaultdict(list)
    for e in events:
        buckets[e.compound_id].append(e)
    return {
        cid: tuple(sorted(es, key=lambda x: x.time_d))
        for cid, es in buckets.items()
    }


def query_times(window: TimeWindow) -> np.ndarray:
    """
    Sample days for a window: start, start+step, ... and always the end itself.
    An inverted window gives an empty array.
    """
    if window.is_empty:
        return np.empty(0, dtype=float)
    n = int(np.floor((window.end_d - window.start_d) / window.step_d + 1e-9)) + 1
    if n > MAX_QUERY_POINTS:
        raise InvalidConfigurationError(
            f"Window would produce {n} query points (limit {MAX_QUERY_POINTS}); use a coarser step.")
    t = window.start_d + np.arange(n, dtype=float) * window.step_d
    if window.end_d - t[-1] > 1e-9:
        t = np.append(t, window.end_d)
    return t


def days_between(origin: datetime, ts: datetime) -> float:
    """Elapsed days from origin to ts (negative when ts is earlier)."""
    return (ts - origin).total_seconds() / _SECONDS_PER_DAY


def day_to_datetime(origin: datetime, day: float) -> datetime:
    return origin + timedelta(days=float(day))
