"""Empirical thresholds used by the classifier, range calculator and color optimizer.

None of these numbers are derived from first principles; they were tuned against
Cook Islands wave forecasts. Regions may override any field (see regions.py).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

# (label, lower bound inclusive) in ascending order; upper bound is the next label's lower bound.
SEA_STATE_LADDER: tuple[tuple[str, float], ...] = (
    ("Calm", 0.0),
    ("Moderate", 1.0),
    ("Rough", 2.5),
    ("Very Rough", 4.0),
    ("High", 6.0),
    ("Very High", 9.0),
    ("Phenomenal", 14.0),
)

# Same labels keyed on wave period (s).
PERIOD_LADDER: tuple[tuple[str, float], ...] = (
    ("Calm", 0.0),
    ("Moderate", 6.0),
    ("Rough", 8.0),
    ("Very Rough", 10.0),
    ("High", 12.0),
    ("Very High", 15.0),
    ("Phenomenal", 18.0),
)

SCALE_HEIGHT = "height"
SCALE_PERIOD = "period"


@dataclass(frozen=True)
class HeuristicTuning:
    ladder: tuple[tuple[str, float], ...] = SEA_STATE_LADDER
    period_ladder: tuple[tuple[str, float], ...] = PERIOD_LADDER
    # coefficient of variation above/below which the sample is tagged variable/uniform
    cv_variable: float = 0.5
    cv_uniform: float = 0.2
    skew_right: float = 1.0
    excess_kurtosis_extreme: float = 3.0
    tukey_fence: float = 1.5
    day_start_hour: int = 6
    day_end_hour: int = 18
    # risk = category index + min(std, risk_std_cap)
    risk_std_cap: float = 2.0
    risk_max: int = 7
    extreme_value_ratio: float = 1.5
    variability_ratio: float = 0.3
    # number of bands at the top of the ladder considered safety critical
    safety_critical_bands: int = 3
    distribution_confidence: Mapping[str, float] = field(
        default_factory=lambda: {"normal": 0.8, "logNormal": 0.7, "unknown": 0.5}
    )
    normal_skew_limit: float = 0.5
    normal_kurtosis_limit: float = 0.5
    lognormal_skew: float = 1.0
    cluster_gap_sigmas: float = 2.0
    calm_max_sigmas: float = 1.0
    severe_max_sigmas: float = 2.0
    base_bands: int = 200
    cv_band_gain: float = 100.0
    extreme_band_bonus: int = 30
    max_bands: int = 500
    default_bands: int = 250
    warning_risk_level: int = 5
    transparency_critical: float = 0.9
    transparency_elevated: float = 0.85
    transparency_default: float = 0.8
    elevated_risk_level: int = 4
    contrast_extreme: float = 0.2
    contrast_variability: float = 0.15
    contrast_spatial: float = 0.1
    spatial_cv_threshold: float = 0.5
    contrast_cap: float = 1.5

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> "HeuristicTuning":
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown tuning fields: {', '.join(unknown)}")
        return replace(self, **dict(overrides))

    def ladder_for(self, scale: str | None) -> tuple[tuple[str, float], ...]:
        """Category ladder for a variable's sea-state scale; empty when it has none."""
        if scale == SCALE_HEIGHT:
            return self.ladder
        if scale == SCALE_PERIOD:
            return self.period_ladder
        return ()

    @property
    def category_labels(self) -> tuple[str, ...]:
        return tuple(label for label, _ in self.ladder)

    def is_safety_critical(self, category: str) -> bool:
        labels = self.category_labels
        return category in labels[len(labels) - self.safety_critical_bands:]

    def is_lowest(self, category: str) -> bool:
        return bool(self.ladder) and category == self.ladder[0][0]


DEFAULT_TUNING = HeuristicTuning()
