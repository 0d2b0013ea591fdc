# src/hormonesim/catalog.py
"""
Read-only compound and blend reference data.

A Catalog is an immutable value built once and passed explicitly into every
simulation and calibration call. `default_catalog()` returns the built-in
library of injectable/oral androgen esters and the Sustanon blends.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from .errors import InvalidConfigurationError, UnknownSubstanceError
from .types import (
    Blend, BlendComponent, Compound, CompoundClass, Route, RouteParameters,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Potency:
    """Relative anabolic / androgenic weights of a compound class (testosterone = 1.0)."""
    anabolic: float
    androgenic: float


POTENCY: Mapping[CompoundClass, Potency] = MappingProxyType({
    CompoundClass.TESTOSTERONE: Potency(1.0, 1.0),
    CompoundClass.NANDROLONE: Potency(1.25, 0.37),
    CompoundClass.TRENBOLONE: Potency(5.0, 5.0),
    CompoundClass.BOLDENONE: Potency(1.0, 0.5),
    CompoundClass.DROSTANOLONE: Potency(0.65, 1.25),
    CompoundClass.STANOZOLOL: Potency(2.0, 0.6),
    CompoundClass.METENOLONE: Potency(0.88, 0.44),
    CompoundClass.TRESTOLONE: Potency(2.3, 1.5),
    CompoundClass.DHB: Potency(1.55, 0.65),
})

REFERENCE_CLASS = CompoundClass.TESTOSTERONE

# Hex colours (no '#') used for per-compound visualization layers.
CLASS_COLORS: Mapping[CompoundClass, str] = MappingProxyType({
    CompoundClass.TESTOSTERONE: "4285F4",
    CompoundClass.NANDROLONE: "0F9D58",
    CompoundClass.TRENBOLONE: "DB4437",
    CompoundClass.BOLDENONE: "F4B400",
    CompoundClass.DROSTANOLONE: "9C27B0",
    CompoundClass.STANOZOLOL: "FF6D00",
    CompoundClass.METENOLONE: "795548",
    CompoundClass.TRESTOLONE: "607D8B",
    CompoundClass.DHB: "009688",
})


class Catalog:
    """
    Immutable lookup of compounds and blends by id.

    Compound and blend ids share one namespace so a DoseSpec can name either.
    Blends are checked at construction: every component must reference a
    compound in the same catalog.
    """

    def __init__(self, compounds: Iterable[Compound], blends: Iterable[Blend] = (),
                 potency: Optional[Mapping[CompoundClass, Potency]] = None):
        compounds = tuple(compounds)
        blends = tuple(blends)
        by_id: dict[str, Compound] = {}
        for c in compounds:
            if c.compound_id in by_id:
                raise InvalidConfigurationError(f"Duplicate compound id '{c.compound_id}'.")
            by_id[c.compound_id] = c
        blend_by_id: dict[str, Blend] = {}
        for b in blends:
            if b.blend_id in by_id or b.blend_id in blend_by_id:
                raise InvalidConfigurationError(f"Duplicate substance id '{b.blend_id}'.")
            for comp in b.components:
                if comp.compound_id not in by_id:
                    raise InvalidConfigurationError(
                        f"Blend '{b.blend_id}' references unknown compound '{comp.compound_id}'.")
            blend_by_id[b.blend_id] = b

        self._compounds = MappingProxyType(by_id)
        self._blends = MappingProxyType(blend_by_id)
        self._potency = MappingProxyType(dict(potency if potency is not None else POTENCY))
        missing = {c.compound_class for c in compounds} - set(self._potency)
        if missing:
            raise InvalidConfigurationError(f"No potency weights for classes {sorted(m.value for m in missing)}.")
        if REFERENCE_CLASS not in self._potency:
            raise InvalidConfigurationError("Potency table must include the testosterone reference class.")
        logger.debug("Catalog built with %d compounds and %d blends", len(by_id), len(blend_by_id))

    # --------------------------
    # Lookups
    # --------------------------
    @property
    def compounds(self) -> tuple[Compound, ...]:
        return tuple(self._compounds.values())

    @property
    def blends(self) -> tuple[Blend, ...]:
        return tuple(self._blends.values())

    def compound(self, compound_id: str) -> Compound:
        try:
            return self._compounds[compound_id]
        except KeyError:
            raise UnknownSubstanceError(compound_id) from None

    def blend(self, blend_id: str) -> Blend:
        try:
            return self._blends[blend_id]
        except KeyError:
            raise UnknownSubstanceError(blend_id) from None

    def is_blend(self, substance_id: str) -> bool:
        return substance_id in self._blends

    def __contains__(self, substance_id: str) -> bool:
        return substance_id in self._compounds or substance_id in self._blends

    def resolve(self, substance_id: str) -> tuple[tuple[Compound, float], ...]:
        """
        Return (compound, mass fraction) pairs for a compound or blend id.
        A compound resolves to itself with fraction 1.0.
        """
        if substance_id in self._compounds:
            return ((self._compounds[substance_id], 1.0),)
        if substance_id in self._blends:
            return tuple((self._compounds[cid], frac)
                         for cid, frac in self._blends[substance_id].fractions())
        raise UnknownSubstanceError(substance_id)

    def display_name(self, substance_id: str) -> str:
        if substance_id in self._blends:
            return self._blends[substance_id].name
        return self.compound(substance_id).display_name

    # --------------------------
    # Potency
    # --------------------------
    def potency(self, compound: Compound) -> Potency:
        """Class weights normalised so the testosterone reference is 1.0."""
        ref = self._potency[REFERENCE_CLASS]
        p = self._potency[compound.compound_class]
        return Potency(anabolic=p.anabolic / ref.anabolic, androgenic=p.androgenic / ref.androgenic)

    # --------------------------
    # Filters
    # --------------------------
    def compounds_of_class(self, compound_class: CompoundClass) -> tuple[Compound, ...]:
        return tuple(c for c in self.compounds if c.compound_class == CompoundClass(compound_class))

    def compounds_for_route(self, route: Route) -> tuple[Compound, ...]:
        return tuple(c for c in self.compounds if c.supports(route))

    def compounds_with_ester(self, ester: str) -> tuple[Compound, ...]:
        return tuple(c for c in self.compounds if c.ester == ester)

    def compounds_with_half_life_between(self, lo_d: float, hi_d: float) -> tuple[Compound, ...]:
        return tuple(c for c in self.compounds if lo_d <= c.half_life_d <= hi_d)

    def blends_containing(self, compound_id: str) -> tuple[Blend, ...]:
        return tuple(b for b in self.blends
                     if any(comp.compound_id == compound_id for comp in b.components))

    def composition_description(self, blend_id: str) -> str:
        """E.g. 'Testosterone Propionate 30mg/mL, Testosterone Phenylpropionate 60mg/mL, ...'"""
        blend = self.blend(blend_id)
        return ", ".join(f"{self._compounds[c.compound_id].display_name} {c.mg_per_ml:.0f}mg/mL"
                         for c in blend.components)


# --------------------------
# Built-in library
# --------------------------
def _injectable(ka_im: float, ka_sc: float) -> dict[Route, RouteParameters]:
    return {
        Route.INTRAMUSCULAR: RouteParameters(bioavailability=1.0, ka_per_d=ka_im),
        Route.SUBCUTANEOUS: RouteParameters(bioavailability=0.85, ka_per_d=ka_sc),
    }


_T = CompoundClass

# (id, common name, class, ester, t½ days, routes)
_LIBRARY = (
    ("testosterone_propionate", "Testosterone Propionate", _T.TESTOSTERONE, "Propionate", 0.8, _injectable(0.70, 0.50)),
    ("testosterone_phenylpropionate", "Testosterone Phenylpropionate", _T.TESTOSTERONE, "Phenylpropionate", 2.5, _injectable(0.50, 0.35)),
    ("testosterone_isocaproate", "Testosterone Isocaproate", _T.TESTOSTERONE, "Isocaproate", 3.1, _injectable(0.35, 0.25)),
    ("testosterone_enanthate", "Testosterone Enanthate", _T.TESTOSTERONE, "Enanthate", 4.5, _injectable(0.30, 0.22)),
    ("testosterone_cypionate", "Testosterone Cypionate", _T.TESTOSTERONE, "Cypionate", 7.0, _injectable(0.25, 0.18)),
    ("testosterone_decanoate", "Testosterone Decanoate", _T.TESTOSTERONE, "Decanoate", 10.0, _injectable(0.18, 0.14)),
    ("testosterone_undecanoate_injectable", "Testosterone Undecanoate (Injectable)", _T.TESTOSTERONE, "Undecanoate", 21.0, _injectable(0.15, 0.10)),
    ("testosterone_undecanoate_oral", "Testosterone Undecanoate (Oral)", _T.TESTOSTERONE, "Undecanoate", 0.067,
     {Route.ORAL: RouteParameters(bioavailability=0.07, ka_per_d=6.0)}),
    ("nandrolone_decanoate", "Nandrolone Decanoate", _T.NANDROLONE, "Decanoate", 9.0, _injectable(0.20, 0.15)),
    ("boldenone_undecylenate", "Boldenone Undecylenate", _T.BOLDENONE, "Undecylenate", 5.125, _injectable(0.25, 0.18)),
    ("trenbolone_acetate", "Trenbolone Acetate", _T.TRENBOLONE, "Acetate", 1.5, _injectable(1.00, 0.70)),
    ("trenbolone_enanthate", "Trenbolone Enanthate", _T.TRENBOLONE, "Enanthate", 11.0, _injectable(0.18, 0.14)),
    ("trenbolone_hexahydrobenzylcarbonate", "Trenbolone Hexahydrobenzylcarbonate", _T.TRENBOLONE, "Hexahydrobenzylcarbonate", 8.0, _injectable(0.20, 0.15)),
    ("stanozolol_suspension", "Stanozolol Suspension", _T.STANOZOLOL, None, 1.0, _injectable(1.50, 1.00)),
    ("drostanolone_propionate", "Drostanolone Propionate", _T.DROSTANOLONE, "Propionate", 2.0, _injectable(0.70, 0.50)),
    ("drostanolone_enanthate", "Drostanolone Enanthate", _T.DROSTANOLONE, "Enanthate", 5.0, _injectable(0.30, 0.22)),
    ("metenolone_enanthate", "Metenolone Enanthate", _T.METENOLONE, "Enanthate", 10.5, _injectable(0.18, 0.15)),
    ("trestolone_acetate", "Trestolone Acetate", _T.TRESTOLONE, "Acetate", 0.083, _injectable(2.00, 1.50)),
    ("dhb_cypionate", "1-Testosterone Cypionate", _T.DHB, "Cypionate", 8.0, _injectable(0.22, 0.16)),
)

# (id, name, manufacturer, description, [(compound id, mg/mL), ...])
_SUSTANON = (
    ("sustanon_250", "Sustanon 250", "Organon", "Mixed testosterone esters for TRT", (30, 60, 60, 100)),
    ("sustanon_350", "Sustanon 350", "Generic", "Higher concentration mixed testosterone esters", (40, 80, 80, 150)),
    ("sustanon_400", "Sustanon 400", "Generic", "Highest concentration mixed testosterone esters", (50, 100, 100, 150)),
)
_SUSTANON_ESTERS = ("testosterone_propionate", "testosterone_phenylpropionate",
                    "testosterone_isocaproate", "testosterone_decanoate")


@lru_cache(maxsize=None)
def default_catalog() -> Catalog:
    """The built-in reference library (built once, shared read-only)."""
    compounds = [
        Compound(compound_id=cid, common_name=name, compound_class=cls, ester=ester,
                 half_life_d=t_half, routes=routes)
        for cid, name, cls, ester, t_half, routes in _LIBRARY
    ]
    blends = [
        Blend(blend_id=bid, name=name, manufacturer=maker, description=desc,
              components=tuple(BlendComponent(cid, mg) for cid, mg in zip(_SUSTANON_ESTERS, mgs)))
        for bid, name, maker, desc, mgs in _SUSTANON
    ]
    return Catalog(compounds, blends)
