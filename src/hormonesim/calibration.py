# src/hormonesim/calibration.py
"""
Calibration of the model against measured blood levels.

The calibration factor k scales every prediction linearly, so the least-squares
factor has a closed form: k = sum(p*m) / sum(p*p), with p the prediction at k=1
and m the measured values. One sample is matched exactly. The optional
diagnostic path refines (ke, ka) of the treatment's primary compound with
scipy's bounded L-BFGS-B while k stays fixed; those rates are reported for
comparison only and never written back into the catalog.
"""
from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
from scipy.optimize import minimize

from . import metrics
from .catalog import Catalog
from .config import CalibrationBounds
from .errors import InvalidConfigurationError
from .simulate import events_until, validate_treatment
from .solvers import predict_at
from .types import BloodSample, CalibrationParameters, DoseEvent, Route, Treatment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateDiagnostic:
    """
    Refitted elimination/absorption constants of one compound. ka is that of
    the compound's most-used route; other routes move by the same ratio.
    """
    compound_id: str
    route: Route
    ke_per_d: float
    ka_per_d: float
    catalog_ke_per_d: float
    catalog_ka_per_d: float
    rmse: float
    correlation: Optional[float]
    converged: bool

    @property
    def half_life_d(self) -> float:
        return math.log(2.0) / self.ke_per_d


@dataclass(frozen=True)
class CalibrationResult:
    """
    Outcome of one calibration.

    performed      : False when no fit was possible (see reason); parameters then
                     equal the input parameters
    parameters     : new CalibrationParameters for the caller to persist
    rmse_before    : RMSE of the predictions under the previous factor
    rmse_after     : RMSE under the fitted factor
    improvement_pct: relative RMSE reduction in percent (None when rmse_before is 0)
    correlation    : Pearson r of predicted vs measured (None for < 2 samples)
    """
    performed: bool
    parameters: CalibrationParameters
    previous_factor: float
    rmse_before: float = float("nan")
    rmse_after: float = float("nan")
    improvement_pct: Optional[float] = None
    correlation: Optional[float] = None
    samples_used: int = 0
    samples_excluded: int = 0
    sample_times: tuple[float, ...] = ()
    measured: tuple[float, ...] = ()
    predicted: tuple[float, ...] = ()
    diagnostic: Optional[RateDiagnostic] = None
    reason: Optional[str] = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def factor(self) -> float:
        return self.parameters.factor


def valid_samples(samples: Sequence[BloodSample]) -> tuple[list[BloodSample], int]:
    """
    Split samples into usable ones and a count of excluded ones.
    Non-positive or non-finite measured values are invalid data.
    """
    good = [s for s in samples
            if math.isfinite(s.time_d) and math.isfinite(s.value) and s.value > 0]
    return sorted(good, key=lambda s: s.time_d), len(samples) - len(good)


def _check_units(samples: Sequence[BloodSample]) -> str:
    units = {s.unit for s in samples}
    if len(units) > 1:
        raise InvalidConfigurationError(
            f"Blood samples use mixed units {sorted(units)}; convert them before calibrating.")
    return units.pop()


def least_squares_factor(predicted_unit: np.ndarray, measured: np.ndarray) -> float:
    """Factor k minimising sum((k*p - m)^2); NaN when every prediction is zero."""
    denom = float(np.dot(predicted_unit, predicted_unit))
    if denom <= 0.0:
        return float("nan")
    return float(np.dot(predicted_unit, measured)) / denom


def primary_compound(events: Sequence[DoseEvent]) -> Optional[str]:
    """Compound with the largest total administered mass (first dosed wins ties)."""
    totals: dict[str, float] = defaultdict(float)
    for e in sorted(events, key=lambda x: x.time_d):
        totals[e.compound_id] += e.amount_mg
    if not totals:
        return None
    return max(totals, key=lambda cid: totals[cid])


def fit_rates(events: Sequence[DoseEvent], catalog: Catalog, times: np.ndarray, measured: np.ndarray,
              factor: float, bounds: CalibrationBounds,
              compound_id: Optional[str] = None, baseline: float = 0.0) -> Optional[RateDiagnostic]:
    """
    Refit (ke, ka) of one compound with the calibration factor held fixed.

    Each rate is searched within rate_span of its catalog value, clipped to the
    plausible [rate_min, rate_max] range. ka is fitted for the compound's
    most-used route; doses by other routes have their ka scaled by the same ratio.
    """
    compound_id = compound_id or primary_compound(events)
    if compound_id is None:
        return None
    compound = catalog.compound(compound_id)
    routes: dict = defaultdict(float)
    for e in events:
        if e.compound_id == compound_id:
            routes[e.route] += e.amount_mg
    route = max(routes, key=lambda r: routes[r])
    ke0 = compound.ke_per_d
    ka0 = compound.route_parameters(route).ka_per_d

    scale = float(np.dot(measured, measured))

    def predict(x: np.ndarray) -> np.ndarray:
        return predict_at(events, times, catalog, factor,
                          {compound_id: (float(x[0]), float(x[1]) / ka0)}, baseline)

    def objective(x: np.ndarray) -> float:
        return float(np.sum((predict(x) - measured) ** 2)) / scale

    x0 = np.array([ke0, ka0])
    box = [bounds.rate_limits(ke0), bounds.rate_limits(ka0)]
    x0 = np.clip(x0, [b[0] for b in box], [b[1] for b in box])
    f0 = objective(x0)
    res = minimize(objective, x0, method="L-BFGS-B", bounds=box)
    logger.debug("Rate fit for %s: %s after %d iterations (f=%.6g -> %.6g)",
                 compound_id, res.message, res.nit, f0, res.fun)
    x = res.x if res.fun <= f0 else x0

    pred = predict(x)
    return RateDiagnostic(
        compound_id=compound_id,
        route=route,
        ke_per_d=float(x[0]), ka_per_d=float(x[1]),
        catalog_ke_per_d=ke0, catalog_ka_per_d=ka0,
        rmse=metrics.rmse(pred, measured),
        correlation=metrics.pearson(pred, measured),
        converged=bool(res.success),
    )


def calibrate(treatment: Treatment, catalog: Catalog, samples: Sequence[BloodSample],
              current: Optional[CalibrationParameters] = None,
              bounds: Optional[CalibrationBounds] = None,
              with_rates: bool = False) -> CalibrationResult:
    """
    Fit the calibration factor of a treatment to its blood samples.

    Parameters
    ----------
    treatment : Treatment
        The dose configuration the samples were taken under.
    catalog : Catalog
        Compound constants.
    samples : Sequence[BloodSample]
        Measured levels; non-positive values are excluded.
    current : CalibrationParameters, optional
        Parameters in use before this fit (default factor 1.0). Its baseline is
        taken as the endogenous level already present in every sample and is
        carried unchanged into the result.
    bounds : CalibrationBounds, optional
        Plausible ranges for k and the diagnostic rates.
    with_rates : bool
        Also refit (ke, ka) of the primary compound as a diagnostic.

    Returns
    -------
    CalibrationResult
        performed=False (factor unchanged) when there are no usable samples,
        the model predicts nothing at the sample days, or a single sample does
        not exceed the baseline.
    """
    current = current or CalibrationParameters()
    bounds = bounds or CalibrationBounds()
    validate_treatment(treatment, catalog)

    used, excluded = valid_samples(samples)
    if excluded:
        logger.warning("Excluded %d blood sample(s) with non-positive or non-finite values", excluded)
    if not used:
        reason = "no blood samples" if not samples else "no valid blood samples"
        logger.info("Calibration of '%s' skipped: %s", treatment.name, reason)
        return CalibrationResult(performed=False, parameters=current, previous_factor=current.factor,
                                 samples_excluded=excluded, reason=reason)
    _check_units(used)

    times = np.array([s.time_d for s in used], dtype=float)
    measured = np.array([s.value for s in used], dtype=float)
    events = events_until(treatment, catalog, float(times.max()))
    unit_pred = predict_at(events, times, catalog, 1.0)
    baseline = current.baseline

    k = least_squares_factor(unit_pred, measured - baseline)
    if math.isnan(k) or (len(used) == 1 and k <= 0):
        reason = ("treatment predicts no hormone at the sample days" if math.isnan(k)
                  else "blood sample does not exceed the endogenous baseline")
        logger.info("Calibration of '%s' skipped: %s", treatment.name, reason)
        return CalibrationResult(performed=False, parameters=current, previous_factor=current.factor,
                                 samples_used=len(used), samples_excluded=excluded,
                                 sample_times=tuple(times.tolist()), measured=tuple(measured.tolist()),
                                 reason=reason)

    notes: list[str] = []
    if len(used) == 1:
        if not bounds.k_min <= k <= bounds.k_max:
            notes.append(f"single-sample factor {k:.4g} is outside [{bounds.k_min}, {bounds.k_max}]")
            logger.warning("Treatment '%s': %s", treatment.name, notes[-1])
    else:
        clipped = bounds.clip_factor(k)
        if clipped != k:
            notes.append(f"factor {k:.4g} clipped to {clipped:.4g}")
            logger.warning("Treatment '%s': %s", treatment.name, notes[-1])
        k = clipped

    rmse_before = metrics.rmse(current.factor * unit_pred + baseline, measured)
    predicted = k * unit_pred + baseline
    rmse_after = metrics.rmse(predicted, measured)
    improvement = (rmse_before - rmse_after) / rmse_before * 100.0 if rmse_before > 0 else None

    diagnostic = None
    if with_rates:
        if len(used) >= 2:
            diagnostic = fit_rates(events, catalog, times, measured, k, bounds, baseline=baseline)
        else:
            notes.append("rate diagnostics need at least two samples")

    params = CalibrationParameters(
        factor=k,
        ke_per_d=diagnostic.ke_per_d if diagnostic else None,
        ka_per_d=diagnostic.ka_per_d if diagnostic else None,
        baseline=baseline,
    )
    logger.info("Calibrated '%s' on %d sample(s): factor %.4g -> %.4g, RMSE %.4g -> %.4g",
                treatment.name, len(used), current.factor, k, rmse_before, rmse_after)
    return CalibrationResult(
        performed=True,
        parameters=params,
        previous_factor=current.factor,
        rmse_before=rmse_before,
        rmse_after=rmse_after,
        improvement_pct=improvement,
        correlation=metrics.pearson(predicted, measured),
        samples_used=len(used),
        samples_excluded=excluded,
        sample_times=tuple(times.tolist()),
        measured=tuple(measured.tolist()),
        predicted=tuple(predicted.tolist()),
        diagnostic=diagnostic,
        warnings=tuple(notes),
    )
