import math
import numpy as np

from hormonesim.models.one_compartment import (
    single_dose_concentration, time_to_peak, peak_concentration,
)


def test_bateman_matches_textbook_formula():
    """
    For ka != ke the kernel must equal
      C(t) = k·D·F·ka/(ka-ke)·(exp(-ke t) - exp(-ka t)).
    """
    D, F, ka, k = 250.0, 0.85, 0.30, 1.7
    ke = math.log(2) / 4.5
    t = np.linspace(0.0, 60.0, 241)

    C = single_dose_concentration(t, D, F, ka, ke, k)
    expected = k * D * F * ka / (ka - ke) * (np.exp(-ke * t) - np.exp(-ka * t))

    assert np.allclose(C, expected, rtol=1e-10, atol=1e-12)


def test_zero_before_dose_and_at_dose_time():
    """Queries before the administration contribute exactly 0; C(0) is 0 as well."""
    t = np.array([-10.0, -0.001, 0.0])
    C = single_dose_concentration(t, 100.0, 1.0, 0.3, 0.15)
    assert np.array_equal(C, np.zeros(3))


def test_scalar_input_returns_float():
    c = single_dose_concentration(3.0, 100.0, 1.0, 0.3, 0.15)
    assert isinstance(c, float) and c > 0.0


def test_fast_elimination_stays_non_negative():
    """
    ka < ke (oral undecanoate: ka=6/d, t½≈1.6 h) must still give a
    non-negative, finite curve.
    """
    ke = math.log(2) / 0.067
    t = np.linspace(0.0, 5.0, 501)
    C = single_dose_concentration(t, 40.0, 0.07, 6.0, ke)
    assert np.all(np.isfinite(C))
    assert np.all(C >= 0.0)
    assert C.max() > 0.0


def test_degenerate_rates_agree_with_limit_form():
    """
    Near ka == ke the standard formula and the limiting form
    k·D·F·ke·t·exp(-ke t) must agree, and nothing may be NaN/inf.
    """
    ke = 0.2
    t = np.linspace(0.0, 50.0, 201)
    limit = 100.0 * ke * t * np.exp(-ke * t)
    for eps in (0.0, 1e-9, 1e-7, 1e-6, 1e-5, 1e-4):
        ka = ke * (1.0 + eps)
        C = single_dose_concentration(t, 100.0, 1.0, ka, ke)
        assert np.all(np.isfinite(C)), eps
        assert np.allclose(C, limit, rtol=1e-2, atol=1e-9), eps


def test_degenerate_far_tail_is_finite():
    ke = 0.2
    t = np.array([0.0, 1e2, 1e3, 1e4])
    C = single_dose_concentration(t, 100.0, 1.0, ke, ke)
    assert np.all(np.isfinite(C)) and np.all(C >= 0.0)


def test_time_to_peak_matches_numeric_maximum():
    """Closed-form Tmax and Cmax agree with a fine-grid search."""
    ka, ke = 0.30, math.log(2) / 4.5
    t = np.linspace(0.0, 30.0, 30001)
    C = single_dose_concentration(t, 250.0, 1.0, ka, ke)

    assert abs(t[int(np.argmax(C))] - time_to_peak(ka, ke)) <= 2e-3
    assert np.isclose(peak_concentration(250.0, 1.0, ka, ke), C.max(), rtol=1e-6)
    assert np.isclose(time_to_peak(ke, ke), 1.0 / ke)


def test_single_dose_rises_to_one_peak_then_decays():
    """
    D=250 mg, F=1, ka=0.7/d, t½=8 d, k=1: starts at 0, never negative,
    rises strictly to a single peak and falls strictly towards 0 afterwards.
    """
    ke = math.log(2) / 8.0
    t = np.linspace(0.0, 200.0, 2001)
    C = single_dose_concentration(t, 250.0, 1.0, 0.7, ke, 1.0)
    i = int(np.argmax(C))

    assert C[0] == 0.0
    assert np.all(C >= 0.0)
    assert 0 < i < t.size - 1
    assert np.all(np.diff(C[:i + 1]) > 0)
    assert np.all(np.diff(C[i:]) < 0)
    assert C[-1] < 1e-6 * C[i]
    assert abs(t[i] - time_to_peak(0.7, ke)) <= 0.1
