from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from marineviz.config.tuning import DEFAULT_TUNING
from marineviz.models.base import SeaStatePattern, StatisticalSummary
from marineviz.models.registry import get_variable
from marineviz.services import color_scheme
from marineviz.services.classifier import (
    PRIORITY_EXTREME_VALUES,
    PRIORITY_SAFETY_CRITICAL,
    PRIORITY_VARIABILITY,
    TAG_EXTREME_EVENTS,
    classify,
)
from marineviz.services.colormaps import sample_palette
from marineviz.services.statistics import analyze

TS = datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)
PERCENTILES = {5: 0.5, 10: 0.7, 25: 1.0, 50: 2.0, 75: 3.0, 80: 3.2, 90: 3.5, 95: 3.8, 99: 4.0}


def _summary(distribution_type: str = "normal", **overrides) -> StatisticalSummary:
    base = {
        "count": 20,
        "total": 20,
        "mean": 2.0,
        "median": 2.0,
        "std": 0.6,
        "skewness": 0.0,
        "excess_kurtosis": 0.0,
        "percentiles": PERCENTILES,
        "min": 0.2,
        "max": 4.1,
        "distribution_type": distribution_type,
        "quality_score": 1.0,
        "spatial_variability": 0.3,
    }
    base.update(overrides)
    return StatisticalSummary(**base)


def _pattern(**overrides) -> SeaStatePattern:
    base = {"primary_category": "Moderate", "category_index": 2, "risk_level": 2}
    base.update(overrides)
    return SeaStatePattern(**base)


def test_heavy_tailed_sample_gets_more_bands() -> None:
    summary = analyze([9, 10, 11, 9.5, 14, 20])
    scheme = color_scheme.optimize(summary, classify(summary, TS), get_variable("hs"))

    assert scheme.num_color_bands > 250
    assert scheme.palette_id == "inferno"


def test_extreme_events_below_warning_risk_use_alternate_palette() -> None:
    pattern = _pattern(secondary_tags=frozenset({TAG_EXTREME_EVENTS}))

    assert color_scheme.select_palette(pattern, get_variable("hs")) == "plasma"
    for var_id in ("hs", "tm02", "tpeak", "inundation"):
        variable = get_variable(var_id)
        assert variable.alternate_palette != variable.default_palette
        assert color_scheme.select_palette(pattern, variable) == variable.alternate_palette
    assert color_scheme.select_palette(_pattern(), get_variable("hs")) == "viridis"


def test_direction_keeps_circular_palette() -> None:
    assert color_scheme.select_palette(_pattern(risk_level=7), get_variable("dirm")) == "compass"


def test_normal_distribution_stop_layout() -> None:
    scheme = color_scheme.optimize(_summary("normal"), _pattern(), get_variable("hs"))

    assert [s.offset for s in scheme.color_stops] == [0.05, 0.25, 0.5, 0.75, 0.95]
    assert [s.value for s in scheme.color_stops] == [0.5, 1.0, 2.0, 3.0, 3.8]
    assert all(s.color == sample_palette("viridis", s.offset) for s in scheme.color_stops)


def test_lognormal_distribution_stop_layout() -> None:
    scheme = color_scheme.optimize(_summary("logNormal"), _pattern(), get_variable("hs"))

    assert [s.offset for s in scheme.color_stops] == [0.0, 0.2, 0.5, 0.8, 1.0]
    assert [s.value for s in scheme.color_stops] == [0.2, 0.7, 2.0, 3.2, 4.1]


def test_unknown_distribution_stop_layout() -> None:
    scheme = color_scheme.optimize(_summary("unknown"), _pattern(), get_variable("hs"))
    assert [s.offset for s in scheme.color_stops] == [0.05, 0.3, 0.5, 0.7, 0.95]


def test_degraded_summary_spreads_stops_over_default_range() -> None:
    scheme = color_scheme.optimize(StatisticalSummary(count=0, total=100), _pattern(), get_variable("hs"))

    assert [s.value for s in scheme.color_stops] == pytest.approx([0.0, 1.0, 2.0, 3.0, 4.0])
    assert scheme.num_color_bands == DEFAULT_TUNING.default_bands


def test_band_count_formula_and_cap() -> None:
    # cv = 0.3 -> 200 + 30
    assert color_scheme.band_count(_summary(), _pattern()) == 230
    tagged = _pattern(secondary_tags=frozenset({TAG_EXTREME_EVENTS}))
    assert color_scheme.band_count(_summary(), tagged) == 260

    tuning = DEFAULT_TUNING.with_overrides({"base_bands": 600})
    assert color_scheme.band_count(_summary(), _pattern(), tuning) == 500


def test_transparency_levels() -> None:
    critical = _pattern(visual_priority=frozenset({PRIORITY_SAFETY_CRITICAL}), risk_level=6)
    assert color_scheme.transparency_for(critical) == 0.9
    assert color_scheme.transparency_for(_pattern(risk_level=4)) == 0.85
    assert color_scheme.transparency_for(_pattern()) == 0.8


def test_contrast_accumulates_and_caps() -> None:
    pattern = _pattern(visual_priority=frozenset({PRIORITY_EXTREME_VALUES, PRIORITY_VARIABILITY}))
    summary = _summary(spatial_variability=0.8)

    assert color_scheme.contrast_for(summary, pattern) == pytest.approx(1.45)
    assert color_scheme.contrast_for(_summary(), _pattern()) == pytest.approx(1.0)

    boosted = DEFAULT_TUNING.with_overrides({"contrast_extreme": 0.5})
    assert color_scheme.contrast_for(summary, pattern, boosted) == pytest.approx(1.5)


def test_typical_mean_period_is_not_a_storm_warning() -> None:
    summary = analyze([8, 9, 10, 11, 12])
    tm02 = get_variable("tm02")
    pattern = classify(summary, TS, variable=tm02)
    scheme = color_scheme.optimize(summary, pattern, tm02)

    assert pattern.primary_category == "Very Rough"
    assert PRIORITY_SAFETY_CRITICAL not in pattern.visual_priority
    assert scheme.palette_id == "ylgnbu"
    assert scheme.transparency < 0.9


def test_high_risk_only_switches_hazard_variables_to_warning_palette() -> None:
    high_risk = _pattern(primary_category="High", category_index=5, risk_level=6)

    assert color_scheme.select_palette(high_risk, get_variable("hs")) == color_scheme.WARNING_PALETTE
    assert color_scheme.select_palette(high_risk, get_variable("inundation")) == color_scheme.WARNING_PALETTE
    assert color_scheme.select_palette(high_risk, get_variable("tm02")) == "ylgnbu"
    assert color_scheme.select_palette(high_risk, get_variable("tpeak")) == "magma"


def test_mean_direction_is_not_classified_as_sea_state() -> None:
    summary = analyze([170.0, 180.0, 190.0])
    dirm = get_variable("dirm")
    pattern = classify(summary, TS, variable=dirm)
    scheme = color_scheme.optimize(summary, pattern, dirm)

    assert pattern.risk_level == 1
    assert PRIORITY_SAFETY_CRITICAL not in pattern.visual_priority
    assert scheme.palette_id == "compass"
    assert scheme.transparency == DEFAULT_TUNING.transparency_default
