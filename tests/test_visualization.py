import math

import numpy as np
import pytest

from hormonesim.catalog import default_catalog
from hormonesim.effects import effect_indices_for
from hormonesim.simulate import run_treatment
from hormonesim.types import DataPoint, DoseSpec, Route, SimpleTreatment, TimeWindow
from hormonesim.visualization import (
    LayerType, VisualizationLayer, VisualizationModel, build_visualization,
)


def _model(substance="sustanon_250"):
    cat = default_catalog()
    tr = SimpleTreatment("t", DoseSpec(substance, 250.0, Route.INTRAMUSCULAR, 7.0))
    res = run_treatment(tr, cat, TimeWindow(0.0, 56.0, 1.0))
    return res, build_visualization(res, cat, effect_indices_for(res, cat))


def test_blend_layers_and_defaults():
    res, model = _model()
    assert len(model.layers_of_type(LayerType.COMPOUND_CURVE)) == 4
    assert [l.layer_id for l in model.layers[-3:]] == ["total", "anabolic", "androgenic"]
    assert all(l.opacity == 0.8 for l in model.layers_of_type(LayerType.COMPOUND_CURVE))

    anabolic = model.layer("anabolic")
    assert not anabolic.visible and anabolic.opacity == 0.7
    assert model.layer("total").visible
    assert len(model.visible_layers()) == 5
    assert [l.z_order for l in model.layers] == list(range(7))


def test_single_compound_layer_style():
    _, model = _model("testosterone_enanthate")
    (layer,) = model.layers_of_type(LayerType.COMPOUND_CURVE)
    assert layer.name == "Testosterone Enanthate"
    assert layer.color == "4285F4" and layer.opacity == 1.0


def test_statistics_match_series():
    res, model = _model("testosterone_enanthate")
    stats = model.statistics()
    assert stats.max_concentration == pytest.approx(res.total.max())
    assert stats.max_compound_concentration == pytest.approx(res.total.max())
    assert stats.average_anabolic_index == pytest.approx(res.total.mean())
    assert stats.anabolic_to_androgenic_ratio == pytest.approx(1.0)


def test_presentation_changes_leave_data_alone():
    res, model = _model()
    before = [list(l.points) for l in model.layers]

    model.set_opacity("total", 1.5)
    assert model.layer("total").opacity == 1.0
    model.set_opacity("total", -0.2)
    assert model.layer("total").opacity == 0.0
    assert model.toggle_visibility("anabolic") is True
    model.set_visibility("anabolic", False)
    assert not model.layer("anabolic").visible
    model.move_layer(4, 0)

    assert sorted(map(tuple, before)) == sorted(tuple(l.points) for l in model.layers)


def test_layer_reordering():
    _, model = _model()
    model.move_up("total")
    ids = [l.layer_id for l in model.layers]
    assert ids.index("total") == 3
    assert model.layer("total").z_order == 3

    model.move_down("total")
    assert model.layer("total").z_order == 4

    first = model.layers[0].layer_id
    model.move_up(first)
    model.move_layer(0, 99)
    assert model.layers[0].layer_id == first


def test_non_finite_values_are_no_data():
    model = VisualizationModel(0.0, 2.0)
    model.add_layer(VisualizationLayer("total", LayerType.TOTAL_CURVE, "Total", "000000",
                                       [DataPoint(0.0, 1.0), DataPoint(1.0, math.nan), DataPoint(2.0, 3.0)]))
    model.add_layer(VisualizationLayer("ana", LayerType.ANABOLIC_INDEX, "A", "000000",
                                       [DataPoint(0.0, math.inf)]))
    stats = model.statistics()
    assert stats.max_concentration == 3.0
    assert stats.max_anabolic_index == 0.0
    assert stats.anabolic_to_androgenic_ratio == 0.0


def test_empty_model_statistics():
    stats = VisualizationModel(0.0, 0.0).statistics()
    assert stats.max_concentration == 0.0
    assert stats.average_androgenic_index == 0.0


def test_normalized_points():
    layer = VisualizationLayer("x", LayerType.TOTAL_CURVE, "x", "000000",
                               [DataPoint(0.0, 2.0), DataPoint(1.0, 4.0)])
    assert [p.level for p in layer.normalized_points()] == [0.5, 1.0]
    flat = VisualizationLayer("z", LayerType.TOTAL_CURVE, "z", "000000", [DataPoint(0.0, 0.0)])
    assert flat.normalized_points() == flat.points


def test_unknown_and_duplicate_layers():
    _, model = _model()
    with pytest.raises(KeyError):
        model.toggle_visibility("nope")
    with pytest.raises(ValueError):
        model.add_layer(VisualizationLayer("total", LayerType.TOTAL_CURVE, "dup", "000000"))
    assert np.isfinite(model.statistics().max_concentration)
