# src/hormonesim/models/one_compartment.py
import math

import numpy as np

from ..config import DEGENERATE_RATE_TOL


def single_dose_concentration(t, dose, F, ka, ke, k=1.0, rel_tol=DEGENERATE_RATE_TOL):
    """
    One-compartment model with first-order absorption and elimination,
    closed form for a single dose (Bateman function).

    Parameters:
      t       : elapsed time since the dose (days); scalar or array
      dose    : administered mass (mg)
      F       : bioavailability of the route (0-1)
      ka      : absorption rate constant (1/day)
      ke      : elimination rate constant (1/day), ln(2)/t½
      k       : calibration factor
      rel_tol : |ka - ke| / ke below which the limiting form is used

    C(t) = k·D·F·ka/(ka-ke)·(e^(-ke·t) - e^(-ka·t))     for ka != ke
    C(t) = k·D·F·ke·t·e^(-ke·t)                          for ka ≈ ke
    C(t) = 0                                             for t < 0

    Inputs are validated upstream; this is a pure numeric kernel.
    """
    t = np.asarray(t, dtype=float)
    active = t >= 0.0
    tt = np.where(active, t, 0.0)
    scale = k * dose * F

    diff = abs(ka - ke)
    if diff <= rel_tol * ke:
        C = scale * ke * tt * np.exp(-ke * tt)
    else:
        # Same curve as ka/(ka-ke)·(e^-ke·t - e^-ka·t), factored around the slower
        # rate so both exponentials stay in [0, 1].
        slow = min(ka, ke)
        C = scale * ka * np.exp(-slow * tt) * (-np.expm1(-diff * tt)) / diff

    C = np.where(active, C, 0.0)
    if C.ndim == 0:
        return float(C)
    return C


def time_to_peak(ka, ke, rel_tol=DEGENERATE_RATE_TOL):
    """Tmax of a single dose (days): ln(ka/ke)/(ka-ke), or 1/ke when ka ≈ ke."""
    if abs(ka - ke) <= rel_tol * ke:
        return 1.0 / ke
    return math.log(ka / ke) / (ka - ke)


def peak_concentration(dose, F, ka, ke, k=1.0, rel_tol=DEGENERATE_RATE_TOL):
    """Cmax of a single dose, evaluated at time_to_peak."""
    return single_dose_concentration(time_to_peak(ka, ke, rel_tol), dose, F, ka, ke, k, rel_tol)
