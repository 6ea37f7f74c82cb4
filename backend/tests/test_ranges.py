from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from marineviz.models.base import AdaptiveRange
from marineviz.models.registry import get_variable
from marineviz.models.variables import MARINE_VARIABLES, WAVE_HEIGHT_LADDER
from marineviz.services import ranges
from marineviz.services.classifier import classify
from marineviz.services.errors import InvalidDomain
from marineviz.services.statistics import analyze

TS = datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)


def _range_for(samples, var_id: str) -> AdaptiveRange:
    summary = analyze(samples)
    return ranges.compute_range(summary, classify(summary, TS), get_variable(var_id))


def test_calm_wave_height_range_snaps_to_half_metre() -> None:
    result = _range_for([0.2, 0.3, 0.25, 0.4, 0.22], "hs")

    assert result.max <= 1.0
    assert result.max == pytest.approx(0.5)
    assert result.min == pytest.approx(0.204)
    assert result.confidence > 0


def test_all_nan_sample_uses_climatological_default() -> None:
    result = _range_for([float("nan")] * 100, "hs")

    assert (result.min, result.max) == (0.0, 4.0)
    assert result.confidence == 0.0


@pytest.mark.parametrize("var_id", sorted(MARINE_VARIABLES) + ["salinity"])
@pytest.mark.parametrize(
    "samples",
    [
        [5.0, 5.0, 5.0],
        [0.0, 0.0],
        [float("nan")],
        [-3.0, -2.0, -1.0],
        [9, 10, 11, 9.5, 14, 20],
        [0.01],
    ],
)
def test_range_is_always_valid(var_id: str, samples) -> None:
    result = _range_for(samples, var_id)
    assert result.min < result.max


def test_degenerate_domain_is_padded_symmetrically() -> None:
    result = _range_for([5.0, 5.0, 5.0], "tm02")
    assert result.min == pytest.approx(4.75)
    assert result.max == pytest.approx(5.25)

    padded = AdaptiveRange.padded(5, 5)
    assert (padded.min, padded.max) == pytest.approx((4.75, 5.25))


def test_zero_domain_uses_absolute_pad() -> None:
    padded = AdaptiveRange.padded(0.0, 0.0)
    assert (padded.min, padded.max) == (-0.5, 0.5)


def test_swapped_and_non_finite_bounds_are_repaired() -> None:
    assert AdaptiveRange.padded(3.0, 1.0).min == 1.0
    repaired = AdaptiveRange.padded(float("nan"), 2.0)
    assert repaired.min < repaired.max


def test_direction_keeps_full_circle() -> None:
    result = _range_for([10.0, 20.0, 350.0], "dirm")
    assert (result.min, result.max) == (0.0, 360.0)


def test_negative_lower_bound_clipped_for_magnitudes() -> None:
    result = _range_for([-1.0, 0.5, 0.6, 0.7], "hs")
    assert result.min == 0.0


def test_severe_sea_extends_upper_bound() -> None:
    summary = analyze([10.0, 10.0, 10.0, 10.0, 30.0])
    result = ranges.compute_range(summary, classify(summary, TS), get_variable("hs"))
    assert result.max >= summary.mean + 2 * summary.std


def test_snap_to_ladder_only_moves_up() -> None:
    assert ranges.snap_to_ladder(0.345, WAVE_HEIGHT_LADDER) == 0.5
    assert ranges.snap_to_ladder(1.0, WAVE_HEIGHT_LADDER) == 1.0
    assert ranges.snap_to_ladder(35.0, WAVE_HEIGHT_LADDER) == 35.0
    assert ranges.snap_to_ladder(1.2, ()) == 1.2


def test_invalid_domain_is_raised_and_repaired(caplog: pytest.LogCaptureFixture) -> None:
    with pytest.raises(InvalidDomain):
        AdaptiveRange(2.0, 2.0)
    with pytest.raises(ValueError):
        AdaptiveRange(float("nan"), 1.0)

    with caplog.at_level(logging.INFO, logger=ranges.__name__):
        result = _range_for([5.0, 5.0, 5.0], "tm02")
    assert result.min < result.max
    assert "Repairing range for tm02" in caplog.text


def test_peak_period_climatology() -> None:
    result = _range_for([], "tpeak")
    assert (result.min, result.max) == (9.0, 14.0)
    assert result.confidence == 0.0
