"""Data-driven palette selection and stop placement.

Stops are placed at distribution-dependent percentiles so that most of the color
ramp is spent where most of the sample lies.
"""

from __future__ import annotations

import math

import numpy as np

from ..config.tuning import DEFAULT_TUNING, HeuristicTuning
from ..models.base import ColorScheme, ColorStop, SeaStatePattern, StatisticalSummary, VariableSpec
from .classifier import PRIORITY_EXTREME_VALUES, PRIORITY_SAFETY_CRITICAL, PRIORITY_VARIABILITY, TAG_EXTREME_EVENTS
from .colormaps import sample_palette
from .ranges import climatological_default

WARNING_PALETTE = "inferno"

# (percentile key, offset); "min"/"max" refer to the sample extremes.
STOP_LAYOUTS: dict[str, tuple[tuple[str | int, float], ...]] = {
    "normal": ((5, 0.05), (25, 0.25), (50, 0.5), (75, 0.75), (95, 0.95)),
    "logNormal": (("min", 0.0), (10, 0.2), (50, 0.5), (80, 0.8), ("max", 1.0)),
    "unknown": ((5, 0.05), (25, 0.3), (50, 0.5), (75, 0.7), (95, 0.95)),
}


def select_palette(pattern: SeaStatePattern, variable: VariableSpec, tuning: HeuristicTuning = DEFAULT_TUNING) -> str:
    if variable.is_angular:
        return variable.default_palette
    if variable.storm_warning and pattern.risk_level >= tuning.warning_risk_level:
        return WARNING_PALETTE
    if TAG_EXTREME_EVENTS in pattern.secondary_tags:
        return variable.alternate_palette
    return variable.default_palette


def _stop_value(summary: StatisticalSummary, key: str | int) -> float | None:
    if key == "min":
        return summary.min
    if key == "max":
        return summary.max
    return summary.percentile(int(key))


def place_stops(summary: StatisticalSummary, variable: VariableSpec, palette_id: str) -> tuple[ColorStop, ...]:
    layout = STOP_LAYOUTS.get(summary.distribution_type, STOP_LAYOUTS["unknown"])
    values = [_stop_value(summary, key) for key, _ in layout]
    if summary.is_degraded or any(v is None or not math.isfinite(v) for v in values):
        default = climatological_default(variable)
        offsets = np.linspace(0.0, 1.0, num=5)
        return tuple(
            ColorStop(
                offset=float(offset),
                value=float(default.min + offset * default.span),
                color=sample_palette(palette_id, float(offset)),
            )
            for offset in offsets
        )
    return tuple(
        ColorStop(offset=offset, value=float(value), color=sample_palette(palette_id, offset))
        for (_, offset), value in zip(layout, values)
    )


def band_count(summary: StatisticalSummary, pattern: SeaStatePattern, tuning: HeuristicTuning = DEFAULT_TUNING) -> int:
    if summary.is_degraded:
        return tuning.default_bands
    cv = summary.coefficient_of_variation or 0.0
    bands = tuning.base_bands + min(cv, 1.0) * tuning.cv_band_gain
    if TAG_EXTREME_EVENTS in pattern.secondary_tags:
        bands += tuning.extreme_band_bonus
    return max(1, min(tuning.max_bands, int(round(bands))))


def transparency_for(pattern: SeaStatePattern, tuning: HeuristicTuning = DEFAULT_TUNING) -> float:
    if PRIORITY_SAFETY_CRITICAL in pattern.visual_priority:
        return tuning.transparency_critical
    if pattern.risk_level >= tuning.elevated_risk_level:
        return tuning.transparency_elevated
    return tuning.transparency_default


def contrast_for(summary: StatisticalSummary, pattern: SeaStatePattern, tuning: HeuristicTuning = DEFAULT_TUNING) -> float:
    contrast = 1.0
    if PRIORITY_EXTREME_VALUES in pattern.visual_priority:
        contrast += tuning.contrast_extreme
    if PRIORITY_VARIABILITY in pattern.visual_priority:
        contrast += tuning.contrast_variability
    spatial_cv = summary.spatial_variability
    if spatial_cv is not None and spatial_cv > tuning.spatial_cv_threshold:
        contrast += tuning.contrast_spatial
    return min(tuning.contrast_cap, contrast)


def optimize(
    summary: StatisticalSummary,
    pattern: SeaStatePattern,
    variable: VariableSpec,
    *,
    tuning: HeuristicTuning = DEFAULT_TUNING,
) -> ColorScheme:
    palette_id = select_palette(pattern, variable, tuning)
    return ColorScheme(
        palette_id=palette_id,
        color_stops=place_stops(summary, variable, palette_id),
        num_color_bands=band_count(summary, pattern, tuning),
        transparency=transparency_for(pattern, tuning),
        contrast_multiplier=round(contrast_for(summary, pattern, tuning), 6),
    )
