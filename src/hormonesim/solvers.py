# src/hormonesim/solvers.py
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Mapping, Optional, Sequence

import numpy as np

from .catalog import Catalog
from .helpers import split_events_by_compound
from .models.one_compartment import single_dose_concentration
from .types import DoseEvent

logger = logging.getLogger(__name__)

# compound_id -> (ke, ka_scale): ke replaces the catalog value, ka_scale
# multiplies the catalog ka of every route the compound is given by
RateOverrides = Mapping[str, tuple[float, float]]


def superpose_compound(events: Sequence[DoseEvent], t_query: np.ndarray, catalog: Catalog,
                       calibration_factor: float = 1.0,
                       rates: Optional[tuple[float, float]] = None) -> np.ndarray:
    """
    Concentration of ONE compound at each query day: the sum of single-dose
    responses of every event given at or before that day.

    events must all share one compound_id. Doses are summed in chronological
    order so results are reproducible.

    rates : optional (ke, ka_scale) for diagnostic fits; ke replaces the catalog
            value and each route's ka is multiplied by ka_scale
    """
    t_query = np.asarray(t_query, dtype=float)
    C = np.zeros_like(t_query)
    if not events:
        return C
    compound = catalog.compound(events[0].compound_id)

    by_route: dict = defaultdict(list)
    for e in sorted(events, key=lambda x: x.time_d):
        by_route[e.route].append(e)

    for route, evs in by_route.items():
        params = compound.route_parameters(route)
        if rates is None:
            ke, ka = compound.ke_per_d, params.ka_per_d
        else:
            ke, ka = rates[0], params.ka_per_d * rates[1]
        dose_t = np.fromiter((e.time_d for e in evs), dtype=float, count=len(evs))
        dose_mg = np.fromiter((e.amount_mg for e in evs), dtype=float, count=len(evs))
        # (n_query, n_dose) elapsed-time grid; doses after a query day contribute 0
        elapsed = t_query[:, None] - dose_t[None, :]
        unit = single_dose_concentration(elapsed, 1.0, params.bioavailability, ka, ke, calibration_factor)
        C = C + (unit * dose_mg[None, :]).sum(axis=1)
    return C


def superpose(events: Sequence[DoseEvent], t_query, catalog: Catalog,
              calibration_factor: float = 1.0,
              rate_overrides: Optional[RateOverrides] = None) -> dict[str, np.ndarray]:
    """
    Per-compound concentration series for a merged list of dose events.

    Parameters
    ----------
    events : Sequence[DoseEvent]
        Dose events for any number of compounds (blends already expanded).
    t_query : array-like
        Query days.
    catalog : Catalog
        Source of each compound's half-life, bioavailability and ka.
    calibration_factor : float, default 1.0
        Multiplier applied uniformly to every prediction.
    rate_overrides : mapping, optional
        compound_id -> (ke, ka_scale) for that compound, see superpose_compound.

    Returns
    -------
    dict[str, np.ndarray]
        compound_id -> concentration at each query day, keyed in order of each
        compound's first dose.
    """
    t_query = np.asarray(t_query, dtype=float)
    rate_overrides = rate_overrides or {}
    per_compound = split_events_by_compound(events)

    results: dict[str, np.ndarray] = {}
    for cid, evs in per_compound.items():
        results[cid] = superpose_compound(evs, t_query, catalog, calibration_factor,
                                          rates=rate_overrides.get(cid))
    logger.debug("Superposed %d events over %d query points for %d compounds",
                 len(events), t_query.size, len(results))
    return results


def total_concentration(per_compound: Mapping[str, np.ndarray], n_points: int) -> np.ndarray:
    """Sum of per-compound series (zeros when there are none)."""
    total = np.zeros(n_points, dtype=float)
    for C in per_compound.values():
        total = total + C
    return total


def predict_at(events: Sequence[DoseEvent], t_query, catalog: Catalog,
               calibration_factor: float = 1.0,
               rate_overrides: Optional[RateOverrides] = None,
               baseline: float = 0.0) -> np.ndarray:
    """Total predicted concentration at the given days, plus an endogenous baseline."""
    t_query = np.asarray(t_query, dtype=float)
    per = superpose(events, t_query, catalog, calibration_factor, rate_overrides)
    return total_concentration(per, t_query.size) + baseline
