# src/hormonesim/simulate.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from .catalog import Catalog
from .config import DEFAULT_STEP_DAYS, MAX_QUERY_POINTS, MIN_STEP_DAYS, SIMPLE_HORIZON_DAYS
from .dosing import treatment_events
from .helpers import query_times
from .solvers import superpose, total_concentration
from .types import (
    AdvancedTreatment, CalibrationParameters, DataPoint, DoseEvent, SimpleTreatment,
    TimeWindow, Treatment,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    """
    Concentration series of one run.

    times        : query days
    total        : total concentration at each query day, endogenous baseline included
    per_compound : compound_id -> concentration series (same length as times)
    events       : dose events that fed the run, chronological
    calibration_factor : factor the series were scaled by
    baseline     : endogenous level added to total (per-compound series exclude it)
    """
    times: np.ndarray
    total: np.ndarray
    per_compound: dict[str, np.ndarray] = field(default_factory=dict)
    events: tuple[DoseEvent, ...] = ()
    calibration_factor: float = 1.0
    baseline: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.times.size == 0

    def points(self) -> list[DataPoint]:
        return [DataPoint(float(t), float(c)) for t, c in zip(self.times, self.total)]

    def compound_points(self, compound_id: str) -> list[DataPoint]:
        return [DataPoint(float(t), float(c)) for t, c in zip(self.times, self.per_compound[compound_id])]


def stage_layout_issues(treatment: Treatment) -> list[str]:
    """
    Gaps and overlaps between consecutive stages of an advanced treatment.
    Reported only; stages are simulated exactly as given.
    """
    if not isinstance(treatment, AdvancedTreatment):
        return []
    issues: list[str] = []
    stages = treatment.stages
    for prev, nxt in zip(stages, stages[1:]):
        prev_end = prev.start_week + prev.duration_weeks
        if nxt.start_week > prev_end:
            issues.append(f"gap of {nxt.start_week - prev_end} week(s) between '{prev.name}' and '{nxt.name}'")
        elif nxt.start_week < prev_end:
            issues.append(f"'{prev.name}' overlaps '{nxt.name}' by {prev_end - nxt.start_week} week(s)")
    if treatment.total_weeks is not None:
        for s in stages:
            if s.start_week + s.duration_weeks > treatment.total_weeks:
                issues.append(f"'{s.name}' runs past the treatment's {treatment.total_weeks} weeks")
    return issues


def validate_treatment(treatment: Treatment, catalog: Catalog) -> list[str]:
    """
    Check every dose of a treatment against the catalog before simulating.

    Raises UnknownSubstanceError / UnsupportedRouteError for bad doses.
    Returns stage layout issues (logged as warnings, never fixed).
    """
    for spec in treatment.dose_specs():
        for compound, _ in catalog.resolve(spec.substance_id):
            compound.route_parameters(spec.route)
    issues = stage_layout_issues(treatment)
    for issue in issues:
        logger.warning("Treatment '%s': %s", treatment.name, issue)
    return issues


def _default_span(treatment: Treatment) -> tuple[float, float]:
    if isinstance(treatment, SimpleTreatment):
        return treatment.start_d, treatment.start_d + SIMPLE_HORIZON_DAYS
    return treatment.start_d, treatment.end_d


def default_step(treatment: Treatment) -> float:
    """
    A step fine enough to show each dosing interval: max(6 h, shortest interval / 16),
    coarsened on long treatments so the default window stays within MAX_QUERY_POINTS.
    """
    intervals = [s.interval_d for s in treatment.dose_specs()]
    step = max(MIN_STEP_DAYS, min(intervals) / 16.0) if intervals else DEFAULT_STEP_DAYS
    start, end = _default_span(treatment)
    return max(step, (end - start) / max(MAX_QUERY_POINTS - 1, 1))


def default_window(treatment: Treatment, step_d: Optional[float] = None) -> TimeWindow:
    """
    Simple treatments show SIMPLE_HORIZON_DAYS from their start; advanced
    treatments span their total weeks (or up to the last stage end).
    """
    step = step_d if step_d is not None else default_step(treatment)
    start, end = _default_span(treatment)
    return TimeWindow(start, end, step)


def run_events(events: Sequence[DoseEvent], catalog: Catalog, t_query,
               calibration_factor: float = 1.0, baseline: float = 0.0) -> SimulationResult:
    """
    Superpose an explicit list of dose events over the given query days.
    """
    t = np.asarray(t_query, dtype=float)
    per = superpose(events, t, catalog, calibration_factor)
    return SimulationResult(times=t, total=total_concentration(per, t.size) + baseline, per_compound=per,
                            events=tuple(sorted(events, key=lambda e: e.time_d)),
                            calibration_factor=calibration_factor, baseline=baseline)


def run_treatment(treatment: Treatment, catalog: Catalog, window: Optional[TimeWindow] = None,
                  calibration: Optional[CalibrationParameters] = None) -> SimulationResult:
    """
    Simulate a treatment over a query window.

    Every dose from the treatment start up to the window end contributes, so a
    window starting mid-treatment still carries the earlier doses' tails.
    An empty or inverted window gives an empty result. A calibration baseline
    is added to the total at every query day.
    """
    calibration = calibration or CalibrationParameters()
    validate_treatment(treatment, catalog)
    window = window or default_window(treatment)
    t = query_times(window)
    if t.size == 0:
        logger.debug("Empty window %s for '%s'", window, treatment.name)
        return SimulationResult(times=t, total=t.copy(), calibration_factor=calibration.factor,
                                baseline=calibration.baseline)

    events = treatment_events(treatment, catalog, treatment.start_d, window.end_d)
    return run_events(events, catalog, t, calibration.factor, calibration.baseline)


def events_until(treatment: Treatment, catalog: Catalog, last_day: float) -> tuple[DoseEvent, ...]:
    """Dose events of a treatment from its start through last_day."""
    return treatment_events(treatment, catalog, treatment.start_d, last_day)
