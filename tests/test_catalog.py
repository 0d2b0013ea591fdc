import math

import pytest

from hormonesim.catalog import Catalog, default_catalog
from hormonesim.errors import (
    HormoneSimError, InvalidConfigurationError, UnknownSubstanceError, UnsupportedRouteError,
)
from hormonesim.types import (
    Blend, BlendComponent, Compound, CompoundClass, Route, RouteParameters,
)


def _compound(cid="c1", half_life=5.0, cls=CompoundClass.TESTOSTERONE):
    return Compound(cid, cid, cls, half_life, {Route.INTRAMUSCULAR: RouteParameters(1.0, 0.3)}, ester="X")


def test_reference_library_contents():
    cat = default_catalog()
    assert len(cat.compounds) == 19
    assert [b.blend_id for b in cat.blends] == ["sustanon_250", "sustanon_350", "sustanon_400"]
    assert default_catalog() is cat


def test_route_table_marks_unsupported_routes():
    te = default_catalog().compound("testosterone_enanthate")
    assert te.supported_routes == (Route.INTRAMUSCULAR, Route.SUBCUTANEOUS)
    assert not te.supports(Route.ORAL)
    with pytest.raises(UnsupportedRouteError) as exc:
        te.route_parameters(Route.ORAL)
    assert "oral" in str(exc.value)

    oral = default_catalog().compound("testosterone_undecanoate_oral")
    assert oral.supported_routes == (Route.ORAL,)
    assert oral.route_parameters("oral").bioavailability == 0.07


def test_elimination_constant_from_half_life():
    te = default_catalog().compound("testosterone_enanthate")
    assert te.ke_per_d == pytest.approx(math.log(2) / 4.5)


def test_unknown_ids_raise_lookup_errors():
    cat = default_catalog()
    with pytest.raises(UnknownSubstanceError):
        cat.compound("nope")
    with pytest.raises(KeyError):
        cat.resolve("nope")
    assert "nope" not in cat
    assert "sustanon_250" in cat and "testosterone_cypionate" in cat


@pytest.mark.parametrize("half_life", [0.0, -2.0, math.nan, math.inf])
def test_invalid_half_life_is_rejected(half_life):
    with pytest.raises(InvalidConfigurationError):
        _compound(half_life=half_life)


@pytest.mark.parametrize("F, ka", [(1.5, 0.3), (-0.1, 0.3), (0.5, 0.0), (0.5, math.nan)])
def test_invalid_route_parameters_are_rejected(F, ka):
    with pytest.raises(InvalidConfigurationError):
        RouteParameters(F, ka)


def test_unknown_route_key_is_rejected():
    with pytest.raises(InvalidConfigurationError):
        Compound("c", "c", CompoundClass.TESTOSTERONE, 5.0, {"nasal": RouteParameters(1.0, 0.3)})


def test_blend_validation():
    with pytest.raises(InvalidConfigurationError):
        Blend("b", "b", components=())
    with pytest.raises(InvalidConfigurationError):
        BlendComponent("c1", 0.0)
    with pytest.raises(InvalidConfigurationError):
        Catalog([_compound()], [Blend("b", "b", (BlendComponent("missing", 10.0),))])


def test_duplicate_ids_are_rejected():
    with pytest.raises(InvalidConfigurationError):
        Catalog([_compound("a"), _compound("a")])
    with pytest.raises(InvalidConfigurationError):
        Catalog([_compound("a")], [Blend("a", "a", (BlendComponent("a", 10.0),))])


def test_errors_share_a_base_class():
    assert issubclass(UnsupportedRouteError, HormoneSimError)
    assert issubclass(UnknownSubstanceError, ValueError)


def test_blend_resolution_fractions():
    cat = default_catalog()
    parts = cat.resolve("sustanon_250")
    assert sum(frac for _, frac in parts) == pytest.approx(1.0)
    assert parts[0][0].compound_id == "testosterone_propionate"
    assert parts[0][1] == pytest.approx(30.0 / 250.0)
    assert cat.resolve("testosterone_cypionate")[0][1] == 1.0


def test_potency_is_relative_to_testosterone():
    cat = default_catalog()
    tren = cat.potency(cat.compound("trenbolone_acetate"))
    assert (tren.anabolic, tren.androgenic) == (5.0, 5.0)
    nandro = cat.potency(cat.compound("nandrolone_decanoate"))
    assert (nandro.anabolic, nandro.androgenic) == pytest.approx((1.25, 0.37))


def test_catalog_queries():
    cat = default_catalog()
    assert len(cat.compounds_of_class(CompoundClass.TRENBOLONE)) == 3
    assert [c.compound_id for c in cat.compounds_for_route(Route.ORAL)] == ["testosterone_undecanoate_oral"]
    assert cat.compounds_for_route(Route.TRANSDERMAL) == ()
    assert {c.compound_id for c in cat.compounds_with_ester("Propionate")} == {
        "testosterone_propionate", "drostanolone_propionate"}
    assert {c.compound_id for c in cat.compounds_with_half_life_between(10.0, 11.0)} == {
        "testosterone_decanoate", "metenolone_enanthate", "trenbolone_enanthate"}
    assert len(cat.blends_containing("testosterone_decanoate")) == 3
    assert cat.blends_containing("nandrolone_decanoate") == ()


def test_display_names():
    cat = default_catalog()
    assert cat.display_name("testosterone_enanthate") == "Testosterone Enanthate"
    assert cat.display_name("stanozolol_suspension") == "Stanozolol (Winstrol) Suspension"
    assert cat.display_name("sustanon_250") == "Sustanon 250"
    assert cat.composition_description("sustanon_250").startswith("Testosterone Propionate 30mg/mL")
