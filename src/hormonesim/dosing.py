# src/hormonesim/dosing.py
from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .catalog import Catalog
from .errors import InvalidConfigurationError
from .types import Blend, DoseEvent, DoseSpec, Route, Treatment

logger = logging.getLogger(__name__)

# Slack when deciding whether a computed dose lands exactly on a boundary.
_EDGE_TOL = 1e-9


def administration_times(start_d: float, interval_d: float, from_d: float, to_d: float,
                         end_d: Optional[float] = None) -> np.ndarray:
    """
    Days of a recurring dose that fall inside the closed range [from_d, to_d].

    Doses are at start_d + i*interval_d for i = 0, 1, 2, ...
    end_d, when given, is the exclusive end of the dosing window (a stage end).
    An infinite end_d leaves the window open (+inf) or empty (-inf).

    Example: start 0, every 7 days, [0, 30]  -> [0, 7, 14, 21, 28]
             start 0, every 7 days, [31, 60] -> [35, 42, 49, 56]
    """
    _validate_positive("interval_d", interval_d)
    _validate_finite("start_d", start_d)
    _validate_finite("from_d", from_d)
    _validate_finite("to_d", to_d)
    if end_d is not None and math.isnan(end_d):
        raise InvalidConfigurationError("end_d must not be NaN.")
    if to_d < from_d or end_d == -math.inf:
        return np.empty(0, dtype=float)

    i_lo = max(0, math.ceil((from_d - start_d) / interval_d - _EDGE_TOL))
    i_hi = math.floor((to_d - start_d) / interval_d + _EDGE_TOL)
    if end_d is not None and math.isfinite(end_d):
        i_hi = min(i_hi, math.ceil((end_d - start_d) / interval_d - _EDGE_TOL) - 1)
    if i_hi < i_lo:
        return np.empty(0, dtype=float)
    return start_d + np.arange(i_lo, i_hi + 1, dtype=float) * interval_d


def schedule(spec: DoseSpec, from_d: float, to_d: float) -> np.ndarray:
    """Administration days of one DoseSpec within [from_d, to_d]."""
    return administration_times(spec.start_d, spec.interval_d, from_d, to_d, end_d=spec.end_d)


def expand_blend_dose(blend: Blend, amount_mg: float) -> tuple[tuple[str, float], ...]:
    """
    Split one blend administration into per-compound masses.
    Each share is amount * (component mg/mL / blend total mg/mL); shares sum to amount.
    """
    _validate_positive("amount_mg", amount_mg)
    return tuple((cid, amount_mg * frac) for cid, frac in blend.fractions())


def expand_dose_spec(spec: DoseSpec, catalog: Catalog, from_d: float, to_d: float) -> list[DoseEvent]:
    """
    Concrete per-compound DoseEvents of one DoseSpec within [from_d, to_d].
    Blends are decomposed into their components; every compound must support the route.
    """
    parts = catalog.resolve(spec.substance_id)
    for compound, _ in parts:
        compound.route_parameters(spec.route)  # raises UnsupportedRouteError

    times = schedule(spec, from_d, to_d)
    events = [
        DoseEvent(time_d=float(t), compound_id=compound.compound_id, route=spec.route,
                  amount_mg=spec.amount_mg * frac, source_id=spec.substance_id, label=spec.label)
        for t in times
        for compound, frac in parts
    ]
    logger.debug("%s: %d administrations -> %d events in [%s, %s]",
                 spec.substance_id, len(times), len(events), from_d, to_d)
    return events


def treatment_events(treatment: Treatment, catalog: Catalog, from_d: float, to_d: float) -> tuple[DoseEvent, ...]:
    """
    All DoseEvents of a treatment within [from_d, to_d], merged chronologically.

    Advanced treatments generate each stage's doses inside that stage's own
    [start, end) window; stages are independent and simply merged by time.
    """
    events: list[DoseEvent] = []
    for spec in treatment.dose_specs():
        events.extend(expand_dose_spec(spec, catalog, from_d, to_d))
    return combine_events(events)


def combine_events(*groups: Iterable[DoseEvent]) -> tuple[DoseEvent, ...]:
    """
    Merge several event sequences into one chronological tuple.
    Ties keep their input order (stable sort) so results are reproducible.
    """
    all_events: list[DoseEvent] = []
    for g in groups:
        all_events.extend(g)
    return tuple(sorted(all_events, key=lambda e: e.time_d))


def from_explicit_schedule(entries: Sequence[Tuple[float, float]], compound_id: str,
                           route: Route = Route.INTRAMUSCULAR) -> tuple[DoseEvent, ...]:
    """
    Build events from manual (time_d, amount_mg) entries.
    Example: entries=[(0.0, 250), (3.5, 250), (7.0, 250)]
    """
    events: list[DoseEvent] = []
    for time_d, amount_mg in entries:
        _validate_positive("amount_mg", amount_mg)
        _validate_finite("time_d", time_d)
        events.append(DoseEvent(time_d=float(time_d), compound_id=compound_id,
                                route=Route(route), amount_mg=float(amount_mg), source_id=compound_id))
    return combine_events(events)


# --------------------------
# Small input validators
# --------------------------
def _validate_positive(name: str, x: float) -> None:
    if not (math.isfinite(x) and x > 0):
        raise InvalidConfigurationError(f"{name} must be > 0 (got {x}).")


def _validate_finite(name: str, x: float) -> None:
    if not math.isfinite(x):
        raise InvalidConfigurationError(f"{name} must be finite (got {x}).")
