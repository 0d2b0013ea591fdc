# src/hormonesim/effects.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import numpy as np

from .catalog import Catalog
from .types import AdvancedTreatment, Treatment


@dataclass(frozen=True)
class EffectIndexSeries:
    """
    Anabolic and androgenic indices at each query day.

    ratio is anabolic / androgenic, 0 where the androgenic index is 0.
    """
    times: np.ndarray
    anabolic: np.ndarray
    androgenic: np.ndarray
    ratio: np.ndarray


def effect_indices(times, per_compound: Mapping[str, np.ndarray], catalog: Catalog) -> EffectIndexSeries:
    """
    Weighted sums of per-compound concentrations, each compound weighted by
    its class potency relative to testosterone.
    """
    t = np.asarray(times, dtype=float)
    anabolic = np.zeros(t.size, dtype=float)
    androgenic = np.zeros(t.size, dtype=float)
    for cid, C in per_compound.items():
        p = catalog.potency(catalog.compound(cid))
        C = np.asarray(C, dtype=float)
        anabolic = anabolic + p.anabolic * C
        androgenic = androgenic + p.androgenic * C
    ratio = np.divide(anabolic, androgenic, out=np.zeros_like(anabolic), where=androgenic > 0)
    return EffectIndexSeries(times=t, anabolic=anabolic, androgenic=androgenic, ratio=ratio)


def effect_indices_for(result, catalog: Catalog) -> EffectIndexSeries:
    """effect_indices over a SimulationResult."""
    return effect_indices(result.times, result.per_compound, catalog)


@dataclass(frozen=True)
class WeeklyEffectSummary:
    anabolic: float
    androgenic: float

    @property
    def ratio(self) -> float:
        return self.anabolic / self.androgenic if self.androgenic > 0 else 0.0


def _weekly_index(specs, catalog: Catalog) -> tuple[float, float]:
    anabolic = androgenic = 0.0
    for spec in specs:
        weekly = spec.amount_mg * 7.0 / spec.interval_d
        for compound, frac in catalog.resolve(spec.substance_id):
            p = catalog.potency(compound)
            anabolic += weekly * frac * p.anabolic
            androgenic += weekly * frac * p.androgenic
    return anabolic, androgenic


def weekly_effect_summary(treatment: Treatment, catalog: Catalog) -> WeeklyEffectSummary:
    """
    Static dose-based indices: weekly mass of each compound times its class
    weight. Advanced treatments average their stages weighted by stage length.
    """
    if not isinstance(treatment, AdvancedTreatment):
        return WeeklyEffectSummary(*_weekly_index(treatment.dose_specs(), catalog))

    total_a = total_g = 0.0
    weeks = 0
    for stage in treatment.stages:
        a, g = _weekly_index(stage.dose_specs(treatment.start_d), catalog)
        total_a += a * stage.duration_weeks
        total_g += g * stage.duration_weeks
        weeks += stage.duration_weeks
    if weeks == 0:
        return WeeklyEffectSummary(0.0, 0.0)
    return WeeklyEffectSummary(total_a / weeks, total_g / weeks)
