"""
Engine configuration.
All settings via environment variables with sensible defaults; every engine
call also accepts explicit values so a run never depends on process state.
"""

import os
from dataclasses import dataclass

# --- Calibration search bounds ---
K_MIN: float = float(os.getenv("HORMONESIM_K_MIN", "0.1"))
K_MAX: float = float(os.getenv("HORMONESIM_K_MAX", "10.0"))
RATE_MIN_PER_D: float = float(os.getenv("HORMONESIM_RATE_MIN", "0.01"))  # d^-1
RATE_MAX_PER_D: float = float(os.getenv("HORMONESIM_RATE_MAX", "5.0"))   # d^-1
# Diagnostic ke/ka may move at most x/÷ this far from the catalog values
RATE_SPAN: float = float(os.getenv("HORMONESIM_RATE_SPAN", "2.0"))

# --- Numerics ---
# Relative |ka - ke| / ke below which the limiting single-dose formula is used
DEGENERATE_RATE_TOL: float = float(os.getenv("HORMONESIM_DEGENERATE_TOL", "1e-6"))

# --- Default simulation windows ---
SIMPLE_HORIZON_DAYS: float = float(os.getenv("HORMONESIM_SIMPLE_HORIZON_DAYS", "90"))
DEFAULT_STEP_DAYS: float = float(os.getenv("HORMONESIM_STEP_DAYS", "1.0"))
MIN_STEP_DAYS: float = 0.25  # 6 hours
MAX_QUERY_POINTS: int = int(os.getenv("HORMONESIM_MAX_QUERY_POINTS", "5000"))

# --- Logging (CLI only; the library never installs handlers) ---
LOG_LEVEL: str = os.getenv("HORMONESIM_LOG_LEVEL", "WARNING")


@dataclass(frozen=True)
class CalibrationBounds:
    """Plausible search ranges for the calibration engine."""
    k_min: float = K_MIN
    k_max: float = K_MAX
    rate_min: float = RATE_MIN_PER_D
    rate_max: float = RATE_MAX_PER_D
    rate_span: float = RATE_SPAN

    def __post_init__(self):
        if not (0 < self.k_min <= self.k_max):
            raise ValueError(f"need 0 < k_min <= k_max (got {self.k_min}, {self.k_max}).")
        if not (0 < self.rate_min <= self.rate_max):
            raise ValueError(f"need 0 < rate_min <= rate_max (got {self.rate_min}, {self.rate_max}).")
        if not self.rate_span >= 1.0:
            raise ValueError(f"rate_span must be >= 1 (got {self.rate_span}).")

    def clip_factor(self, k: float) -> float:
        return min(self.k_max, max(self.k_min, k))

    def rate_limits(self, nominal: float) -> tuple[float, float]:
        """Bounds for a diagnostic rate fitted around a catalog value."""
        lo = max(self.rate_min, nominal / self.rate_span)
        hi = min(self.rate_max, nominal * self.rate_span)
        if lo > hi:
            # Catalog value outside the plausible range: search the whole range.
            return self.rate_min, self.rate_max
        return lo, hi
