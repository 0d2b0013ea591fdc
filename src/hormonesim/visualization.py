# src/hormonesim/visualization.py
"""
Presentation layers built from one simulation run.

Layers are plain mutable records kept in drawing order, frontmost first.
Changing visibility, opacity or order never touches the simulated numbers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from .catalog import CLASS_COLORS, Catalog
from .effects import EffectIndexSeries
from .types import DataPoint

logger = logging.getLogger(__name__)

TOTAL_COLOR = "34A853"
ANABOLIC_COLOR = "FBBC05"
ANDROGENIC_COLOR = "EA4335"
SINGLE_COMPOUND_COLOR = "4285F4"


class LayerType(str, Enum):
    COMPOUND_CURVE = "compound_curve"
    TOTAL_CURVE = "total_curve"
    ANABOLIC_INDEX = "anabolic_index"
    ANDROGENIC_INDEX = "androgenic_index"


@dataclass
class VisualizationLayer:
    layer_id: str
    type: LayerType
    name: str
    color: str
    points: list[DataPoint] = field(default_factory=list)
    visible: bool = True
    opacity: float = 1.0
    z_order: int = 0

    def levels(self) -> np.ndarray:
        return np.array([p.level for p in self.points], dtype=float)

    def normalized_points(self) -> list[DataPoint]:
        """Levels scaled to 0-1 by the layer maximum; unchanged when the maximum is not positive."""
        if not self.points:
            return []
        levels = self.levels()
        finite = levels[np.isfinite(levels)]
        peak = float(finite.max()) if finite.size else 0.0
        if peak <= 0:
            return list(self.points)
        return [DataPoint(p.time_d, p.level / peak) for p in self.points]


@dataclass(frozen=True)
class VisualizationStatistics:
    max_concentration: float
    max_compound_concentration: float
    max_anabolic_index: float
    max_androgenic_index: float
    average_anabolic_index: float
    average_androgenic_index: float
    anabolic_to_androgenic_ratio: float


class VisualizationModel:
    def __init__(self, start_d: float, end_d: float, unit: str = "model unit"):
        self.start_d = start_d
        self.end_d = end_d
        self.unit = unit
        self._layers: list[VisualizationLayer] = []

    @property
    def layers(self) -> tuple[VisualizationLayer, ...]:
        return tuple(self._layers)

    def add_layer(self, layer: VisualizationLayer) -> VisualizationLayer:
        if any(l.layer_id == layer.layer_id for l in self._layers):
            raise ValueError(f"Duplicate layer id '{layer.layer_id}'.")
        self._layers.append(layer)
        self._renumber()
        return layer

    def layer(self, layer_id: str) -> VisualizationLayer:
        for l in self._layers:
            if l.layer_id == layer_id:
                return l
        raise KeyError(layer_id)

    def _index(self, layer_id: str) -> int:
        return self._layers.index(self.layer(layer_id))

    def _renumber(self) -> None:
        for i, l in enumerate(self._layers):
            l.z_order = i

    # --- presentation state ---
    def set_visibility(self, layer_id: str, visible: bool) -> None:
        self.layer(layer_id).visible = bool(visible)

    def toggle_visibility(self, layer_id: str) -> bool:
        l = self.layer(layer_id)
        l.visible = not l.visible
        return l.visible

    def set_opacity(self, layer_id: str, opacity: float) -> None:
        self.layer(layer_id).opacity = min(1.0, max(0.0, float(opacity)))

    def move_layer(self, source: int, destination: int) -> None:
        """Move the layer at position source to destination; out-of-range moves are ignored."""
        n = len(self._layers)
        if not (0 <= source < n and 0 <= destination < n) or source == destination:
            return
        self._layers.insert(destination, self._layers.pop(source))
        self._renumber()

    def move_up(self, layer_id: str) -> None:
        """One step towards the front."""
        i = self._index(layer_id)
        self.move_layer(i, i - 1)

    def move_down(self, layer_id: str) -> None:
        i = self._index(layer_id)
        self.move_layer(i, i + 1)

    # --- queries ---
    def layers_of_type(self, layer_type: LayerType) -> list[VisualizationLayer]:
        return [l for l in self._layers if l.type == LayerType(layer_type)]

    def visible_layers(self) -> list[VisualizationLayer]:
        return [l for l in self._layers if l.visible]

    def _levels(self, layer_type: LayerType) -> np.ndarray:
        arrays = [l.levels() for l in self.layers_of_type(layer_type)]
        if not arrays:
            return np.empty(0, dtype=float)
        v = np.concatenate(arrays)
        bad = int((~np.isfinite(v)).sum())
        if bad:
            logger.warning("Ignoring %d non-finite %s values in statistics", bad, LayerType(layer_type).value)
        return v[np.isfinite(v)]

    def statistics(self) -> VisualizationStatistics:
        """Maxima and averages over all layers of each type; a type with no data counts as 0."""
        def peak(v):
            return float(v.max()) if v.size else 0.0

        def mean(v):
            return float(v.mean()) if v.size else 0.0

        anabolic = self._levels(LayerType.ANABOLIC_INDEX)
        androgenic = self._levels(LayerType.ANDROGENIC_INDEX)
        avg_a, avg_g = mean(anabolic), mean(androgenic)
        return VisualizationStatistics(
            max_concentration=peak(self._levels(LayerType.TOTAL_CURVE)),
            max_compound_concentration=peak(self._levels(LayerType.COMPOUND_CURVE)),
            max_anabolic_index=peak(anabolic),
            max_androgenic_index=peak(androgenic),
            average_anabolic_index=avg_a,
            average_androgenic_index=avg_g,
            anabolic_to_androgenic_ratio=avg_a / avg_g if avg_g > 0 else 0.0,
        )


def _points(times: np.ndarray, levels: np.ndarray) -> list[DataPoint]:
    return [DataPoint(float(t), float(c)) for t, c in zip(times, levels)]


def build_visualization(result, catalog: Catalog, effects: Optional[EffectIndexSeries] = None,
                        unit: str = "model unit") -> VisualizationModel:
    """
    Layers for a SimulationResult: one curve per compound, the total curve,
    then the anabolic and androgenic index curves (hidden, 70% opacity).
    """
    times = result.times
    start = float(times[0]) if times.size else 0.0
    end = float(times[-1]) if times.size else 0.0
    model = VisualizationModel(start, end, unit)

    single = len(result.per_compound) == 1
    for cid, C in result.per_compound.items():
        compound = catalog.compound(cid)
        model.add_layer(VisualizationLayer(
            layer_id=f"compound:{cid}",
            type=LayerType.COMPOUND_CURVE,
            name=compound.display_name,
            color=SINGLE_COMPOUND_COLOR if single else CLASS_COLORS[compound.compound_class],
            points=_points(times, C),
            opacity=1.0 if single else 0.8,
        ))
    model.add_layer(VisualizationLayer("total", LayerType.TOTAL_CURVE, "Total Concentration",
                                       TOTAL_COLOR, _points(times, result.total)))
    if effects is not None:
        model.add_layer(VisualizationLayer("anabolic", LayerType.ANABOLIC_INDEX, "Anabolic Effect",
                                           ANABOLIC_COLOR, _points(effects.times, effects.anabolic),
                                           visible=False, opacity=0.7))
        model.add_layer(VisualizationLayer("androgenic", LayerType.ANDROGENIC_INDEX, "Androgenic Effect",
                                           ANDROGENIC_COLOR, _points(effects.times, effects.androgenic),
                                           visible=False, opacity=0.7))
    return model
