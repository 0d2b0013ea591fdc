import math

import numpy as np
import pytest

from hormonesim.catalog import default_catalog
from hormonesim.metrics import (
    auc_trapz, cavg, cmax, cmax_tmax, cmin, find_peak, fluctuation_index, pearson,
    peak_to_trough_ratio, rmse, tmax,
)
from hormonesim.simulate import run_treatment
from hormonesim.types import DoseSpec, Route, SimpleTreatment, TimeWindow


def test_twice_weekly_smoke():
    """
    Smoke test: 250 mg IM every 3.5 days for 8 weeks gives a non-negative
    profile with sensible metrics.
    """
    tr = SimpleTreatment("e3.5d", DoseSpec("testosterone_enanthate", 250.0, Route.INTRAMUSCULAR, 3.5))
    res = run_treatment(tr, default_catalog(), TimeWindow(0.0, 56.0, 0.25))
    t, C = res.times, res.total

    assert np.all(C >= 0.0)
    assert cmax(C) > 0.0
    assert 0.0 <= tmax(t, C) <= 56.0
    assert auc_trapz(t, C) > 0.0
    assert cmin(C) == 0.0

    ptr = peak_to_trough_ratio(t, C, interval_d=3.5)
    fi = fluctuation_index(t, C, interval_d=3.5)
    assert np.isfinite(ptr) and ptr > 1.0
    assert np.isfinite(fi) and fi >= 0.0
    # whole series starts at 0, so the trough is 0
    assert peak_to_trough_ratio(t, C) == math.inf


def test_non_finite_values_are_ignored():
    t = np.array([0.0, 1.0, 2.0, 3.0])
    C = np.array([1.0, np.nan, 5.0, np.inf])
    assert cmax(C) == 5.0
    assert cmax_tmax(t, C) == (5.0, 2.0)
    assert cavg(C) == 3.0
    assert auc_trapz(t, C) == pytest.approx(6.0)


def test_empty_series():
    empty = np.array([])
    assert math.isnan(cmax(empty))
    assert find_peak(empty, empty) is None
    assert auc_trapz(empty, empty) == 0.0
    assert math.isnan(rmse([], []))


def test_find_peak():
    t = np.array([0.0, 1.0, 2.0])
    assert find_peak(t, np.array([0.0, 3.0, 1.0])) == (1.0, 3.0)


def test_rmse_and_correlation():
    assert rmse([1.0, 2.0], [1.0, 4.0]) == pytest.approx(math.sqrt(2.0))
    assert pearson([1.0, 2.0, 3.0], [2.0, 4.0, 6.5]) == pytest.approx(1.0, abs=1e-2)
    assert pearson([1.0], [1.0]) is None
    assert pearson([1.0, 1.0, 1.0], [1.0, 2.0, 3.0]) is None
