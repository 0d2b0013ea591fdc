# src/hormonesim/types.py
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, NamedTuple, Optional, Union

from .errors import InvalidConfigurationError, UnsupportedRouteError

# We keep *all* time in DAYS internally, relative to a caller-chosen origin
# (usually the treatment start = day 0). Doses are in mg.


class Route(str, Enum):
    """Fixed set of administration routes understood by the engine."""
    INTRAMUSCULAR = "intramuscular"
    SUBCUTANEOUS = "subcutaneous"
    ORAL = "oral"
    TRANSDERMAL = "transdermal"

    @property
    def display_name(self) -> str:
        return _ROUTE_DISPLAY[self]


_ROUTE_DISPLAY = {
    Route.INTRAMUSCULAR: "Intramuscular (IM)",
    Route.SUBCUTANEOUS: "Subcutaneous (SubQ)",
    Route.ORAL: "Oral",
    Route.TRANSDERMAL: "Transdermal",
}


class CompoundClass(str, Enum):
    TESTOSTERONE = "testosterone"
    NANDROLONE = "nandrolone"
    TRENBOLONE = "trenbolone"
    BOLDENONE = "boldenone"
    DROSTANOLONE = "drostanolone"
    STANOZOLOL = "stanozolol"
    METENOLONE = "metenolone"
    TRESTOLONE = "trestolone"
    DHB = "dhb"

    @property
    def display_name(self) -> str:
        return _CLASS_DISPLAY[self]


_CLASS_DISPLAY = {
    CompoundClass.TESTOSTERONE: "Testosterone",
    CompoundClass.NANDROLONE: "Nandrolone",
    CompoundClass.TRENBOLONE: "Trenbolone",
    CompoundClass.BOLDENONE: "Boldenone",
    CompoundClass.DROSTANOLONE: "Drostanolone (Masteron)",
    CompoundClass.STANOZOLOL: "Stanozolol (Winstrol)",
    CompoundClass.METENOLONE: "Metenolone (Primobolan)",
    CompoundClass.TRESTOLONE: "Trestolone (MENT)",
    CompoundClass.DHB: "1-Testosterone (DHB)",
}


def _require_finite_positive(name: str, x: float) -> None:
    if not (math.isfinite(x) and x > 0):
        raise InvalidConfigurationError(f"{name} must be a finite number > 0 (got {x}).")


@dataclass(frozen=True)
class RouteParameters:
    """
    PK constants for one compound given by one route.

    bioavailability : fraction of the dose reaching circulation (0-1)
    ka_per_d        : first-order absorption rate constant (1/day)
    """
    bioavailability: float
    ka_per_d: float

    def __post_init__(self):
        if not (math.isfinite(self.bioavailability) and 0.0 <= self.bioavailability <= 1.0):
            raise InvalidConfigurationError(
                f"bioavailability must be within [0, 1] (got {self.bioavailability}).")
        _require_finite_positive("ka_per_d", self.ka_per_d)


# Explicit marker for a route a compound cannot be given by.
UNSUPPORTED = None


@dataclass(frozen=True)
class Compound:
    """
    Reference PK data for one compound (a steroid plus its ester).

    compound_id     : stable catalog identifier (e.g., "testosterone_enanthate")
    common_name     : human readable name
    compound_class  : parent hormone class, drives potency weights and colours
    ester           : ester name, None for suspensions
    half_life_d     : elimination half-life in days
    routes          : Route -> RouteParameters, every Route present; UNSUPPORTED
                      (None) marks a route the compound cannot be given by
    """
    compound_id: str
    common_name: str
    compound_class: CompoundClass
    half_life_d: float
    routes: Mapping[Route, Optional[RouteParameters]]
    ester: Optional[str] = None

    def __post_init__(self):
        _require_finite_positive(f"half_life_d of {self.compound_id}", self.half_life_d)
        try:
            given = {Route(key): value for key, value in self.routes.items()}
        except ValueError as exc:
            raise InvalidConfigurationError(f"Unknown route for {self.compound_id}: {exc}") from exc
        # Normalise to a full table so a missing route is an explicit UNSUPPORTED entry.
        table = {route: given.get(route, UNSUPPORTED) for route in Route}
        object.__setattr__(self, "routes", table)

    @property
    def ke_per_d(self) -> float:
        """Elimination rate constant ln(2)/t½ (1/day)."""
        return math.log(2.0) / self.half_life_d

    @property
    def display_name(self) -> str:
        if self.ester:
            return f"{self.compound_class.display_name} {self.ester}"
        return f"{self.compound_class.display_name} Suspension"

    @property
    def supported_routes(self) -> tuple[Route, ...]:
        return tuple(r for r, p in self.routes.items() if p is not UNSUPPORTED)

    def supports(self, route: Route) -> bool:
        return self.routes[Route(route)] is not UNSUPPORTED

    def route_parameters(self, route: Route) -> RouteParameters:
        params = self.routes[Route(route)]
        if params is UNSUPPORTED:
            raise UnsupportedRouteError(self.compound_id, Route(route))
        return params

    def __hash__(self):
        return hash(self.compound_id)


@dataclass(frozen=True)
class BlendComponent:
    compound_id: str
    mg_per_ml: float

    def __post_init__(self):
        _require_finite_positive(f"mg_per_ml of {self.compound_id}", self.mg_per_ml)


@dataclass(frozen=True)
class Blend:
    """
    A vial containing several compounds at fixed concentrations.

    Each component's share of an administered blend dose is its mg/mL divided
    by the blend's total mg/mL.
    """
    blend_id: str
    name: str
    components: tuple[BlendComponent, ...]
    manufacturer: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "components", tuple(self.components))
        if not self.components:
            raise InvalidConfigurationError(f"Blend {self.blend_id} has no components.")

    @property
    def total_concentration(self) -> float:
        return sum(c.mg_per_ml for c in self.components)

    def fractions(self) -> tuple[tuple[str, float], ...]:
        total = self.total_concentration
        return tuple((c.compound_id, c.mg_per_ml / total) for c in self.components)


@dataclass(frozen=True)
class DoseSpec:
    """
    A recurring dose of one compound or blend.

    substance_id : catalog id of a Compound or a Blend
    amount_mg    : mass given at each administration
    route        : administration route
    interval_d   : spacing between administrations in days
    start_d      : day of the first administration
    end_d        : optional exclusive end of the dosing window (regimen stage);
                   +inf means no end and is stored as None
    label        : optional tag carried onto the generated events (stage name)
    """
    substance_id: str
    amount_mg: float
    route: Route
    interval_d: float
    start_d: float = 0.0
    end_d: Optional[float] = None
    label: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "route", Route(self.route))
        _require_finite_positive("amount_mg", self.amount_mg)
        _require_finite_positive("interval_d", self.interval_d)
        if not math.isfinite(self.start_d):
            raise InvalidConfigurationError(f"start_d must be finite (got {self.start_d}).")
        if self.end_d is not None:
            if math.isnan(self.end_d) or self.end_d == -math.inf:
                raise InvalidConfigurationError(f"end_d must be a day or +inf (got {self.end_d}).")
            if math.isinf(self.end_d):
                # open-ended dosing window
                object.__setattr__(self, "end_d", None)


@dataclass(frozen=True)
class StageDose:
    """A compound or blend dosed throughout one stage; timing comes from the stage."""
    substance_id: str
    amount_mg: float
    route: Route
    interval_d: float

    def __post_init__(self):
        object.__setattr__(self, "route", Route(self.route))
        _require_finite_positive("amount_mg", self.amount_mg)
        _require_finite_positive("interval_d", self.interval_d)


@dataclass(frozen=True)
class Stage:
    """
    A week-bounded segment of an advanced treatment.

    start_week     : 0-based week offset from the treatment start
    duration_weeks : stage length in weeks
    doses          : compounds/blends dosed during the stage
    """
    name: str
    start_week: int
    duration_weeks: int
    doses: tuple[StageDose, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "doses", tuple(self.doses))
        if not (isinstance(self.start_week, int) and self.start_week >= 0):
            raise InvalidConfigurationError(f"start_week must be an integer >= 0 (got {self.start_week}).")
        if not (isinstance(self.duration_weeks, int) and self.duration_weeks > 0):
            raise InvalidConfigurationError(
                f"duration_weeks must be a positive integer (got {self.duration_weeks}).")

    def window(self, treatment_start_d: float) -> tuple[float, float]:
        """Absolute [start, end) days of this stage."""
        start = treatment_start_d + self.start_week * 7.0
        return start, start + self.duration_weeks * 7.0

    def dose_specs(self, treatment_start_d: float) -> tuple[DoseSpec, ...]:
        start, end = self.window(treatment_start_d)
        return tuple(
            DoseSpec(substance_id=d.substance_id, amount_mg=d.amount_mg, route=d.route,
                     interval_d=d.interval_d, start_d=start, end_d=end, label=self.name)
            for d in self.doses
        )


@dataclass(frozen=True)
class SimpleTreatment:
    """One compound or blend dosed on a fixed schedule, indefinitely."""
    name: str
    dose: DoseSpec

    @property
    def start_d(self) -> float:
        return self.dose.start_d

    def dose_specs(self) -> tuple[DoseSpec, ...]:
        return (self.dose,)


@dataclass(frozen=True)
class AdvancedTreatment:
    """Ordered stages, each with its own compounds/blends, counted from start_d."""
    name: str
    stages: tuple[Stage, ...]
    start_d: float = 0.0
    total_weeks: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "stages", tuple(sorted(self.stages, key=lambda s: s.start_week)))
        if self.total_weeks is not None and not (isinstance(self.total_weeks, int) and self.total_weeks > 0):
            raise InvalidConfigurationError(f"total_weeks must be a positive integer (got {self.total_weeks}).")

    @property
    def end_d(self) -> float:
        if self.total_weeks is not None:
            return self.start_d + self.total_weeks * 7.0
        if not self.stages:
            return self.start_d
        return max(s.window(self.start_d)[1] for s in self.stages)

    def dose_specs(self) -> tuple[DoseSpec, ...]:
        specs: list[DoseSpec] = []
        for stage in self.stages:
            specs.extend(stage.dose_specs(self.start_d))
        return tuple(specs)


Treatment = Union[SimpleTreatment, AdvancedTreatment]


@dataclass(frozen=True)
class BloodSample:
    """A measured blood level at a day; non-positive values are treated as invalid."""
    time_d: float
    value: float
    unit: str = "ng/dL"


@dataclass(frozen=True)
class CalibrationParameters:
    """
    Per-subject model adjustment.

    factor   : multiplicative calibration factor applied to every dose response
    ke_per_d : diagnostic elimination constant from the last rate fit (not persisted
               into the catalog)
    ka_per_d : diagnostic absorption constant from the last rate fit (primary route)
    baseline : endogenous level added to every total prediction, in sample units;
               not scaled by factor. 0 disables it.
    """
    factor: float = 1.0
    ke_per_d: Optional[float] = None
    ka_per_d: Optional[float] = None
    baseline: float = 0.0

    def __post_init__(self):
        _require_finite_positive("calibration factor", self.factor)
        if not (math.isfinite(self.baseline) and self.baseline >= 0):
            raise InvalidConfigurationError(f"baseline must be a finite number >= 0 (got {self.baseline}).")


class DataPoint(NamedTuple):
    time_d: float
    level: float


@dataclass(frozen=True)
class DoseEvent:
    """
    A single administration of one compound.

    time_d      : day the dose is given
    compound_id : compound receiving the mass (blends are already expanded)
    route       : administration route
    amount_mg   : mass of this compound in the administration
    source_id   : compound or blend the dose was specified as
    label       : stage name, when the dose came from an advanced treatment
    """
    time_d: float
    compound_id: str
    route: Route
    amount_mg: float
    source_id: Optional[str] = None
    label: Optional[str] = None


@dataclass(frozen=True)
class TimeWindow:
    """Closed query range [start_d, end_d] sampled every step_d days."""
    start_d: float
    end_d: float
    step_d: float = 1.0

    def __post_init__(self):
        _require_finite_positive("step_d", self.step_d)
        if not (math.isfinite(self.start_d) and math.isfinite(self.end_d)):
            raise InvalidConfigurationError("time window bounds must be finite.")

    @property
    def is_empty(self) -> bool:
        return self.end_d < self.start_d

