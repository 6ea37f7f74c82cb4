from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

from ..config.tuning import DEFAULT_TUNING, SCALE_HEIGHT, HeuristicTuning
from ..models.base import SeaStatePattern, StatisticalSummary, VariableSpec
from .statistics import has_heavy_tail

TAG_HIGHLY_VARIABLE = "highly variable"
TAG_UNIFORM = "uniform"
TAG_RIGHT_SKEWED = "right skewed"
TAG_EXTREME_EVENTS = "extreme events present"
TAG_DAYTIME = "daytime"
TAG_NIGHTTIME = "nighttime"

PRIORITY_EXTREME_VALUES = "extreme values"
PRIORITY_VARIABILITY = "variability"
PRIORITY_SAFETY_CRITICAL = "safety critical"

# Category reported for variables with no sea-state ladder (directions, unknown fields).
UNCLASSIFIED = "Unclassified"


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def category_for(
    mean: float | None,
    tuning: HeuristicTuning = DEFAULT_TUNING,
    *,
    scale: str | None = SCALE_HEIGHT,
) -> tuple[str, int]:
    """First-match lookup of mean against the scale's ladder; returns (label, 1-based index).

    Values below the first lower bound fold into the first band; invalid means
    default to the lowest band. A scale without a ladder is UNCLASSIFIED.
    """
    ladder = tuning.ladder_for(scale)
    if not ladder:
        return UNCLASSIFIED, 1
    if not _finite(mean):
        return ladder[0][0], 1
    for idx, (label, _) in enumerate(ladder):
        upper = ladder[idx + 1][1] if idx + 1 < len(ladder) else math.inf
        if mean < upper:
            return label, idx + 1
    return ladder[-1][0], len(ladder)


def local_hour(timestamp: datetime, utc_offset_hours: float | None = None) -> int:
    if utc_offset_hours is None:
        return timestamp.hour
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone(timedelta(hours=utc_offset_hours))).hour


def classify(
    summary: StatisticalSummary,
    timestamp: datetime,
    *,
    tuning: HeuristicTuning = DEFAULT_TUNING,
    utc_offset_hours: float | None = None,
    variable: VariableSpec | None = None,
) -> SeaStatePattern:
    scale = variable.sea_state_scale if variable is not None else SCALE_HEIGHT
    category, index = category_for(summary.mean, tuning, scale=scale)
    mean = summary.mean if _finite(summary.mean) else 0.0
    std = summary.std if _finite(summary.std) else 0.0

    tags: set[str] = set()
    cv = summary.coefficient_of_variation
    if cv is not None:
        if cv > tuning.cv_variable:
            tags.add(TAG_HIGHLY_VARIABLE)
        elif cv < tuning.cv_uniform:
            tags.add(TAG_UNIFORM)
    if _finite(summary.skewness) and summary.skewness > tuning.skew_right:
        tags.add(TAG_RIGHT_SKEWED)
    if has_heavy_tail(summary, tuning):
        tags.add(TAG_EXTREME_EVENTS)
    hour = local_hour(timestamp, utc_offset_hours)
    tags.add(TAG_DAYTIME if tuning.day_start_hour <= hour < tuning.day_end_hour else TAG_NIGHTTIME)

    if category == UNCLASSIFIED:
        risk = 1
    else:
        risk = int(round(index + min(std, tuning.risk_std_cap)))
        risk = max(1, min(tuning.risk_max, risk))

    priority: set[str] = set()
    p95 = summary.percentile(95)
    if _finite(summary.max) and _finite(p95) and summary.max > p95 * tuning.extreme_value_ratio:
        priority.add(PRIORITY_EXTREME_VALUES)
    if not summary.is_degraded and std > mean * tuning.variability_ratio:
        priority.add(PRIORITY_VARIABILITY)
    if tuning.is_safety_critical(category):
        priority.add(PRIORITY_SAFETY_CRITICAL)

    distribution_confidence = tuning.distribution_confidence.get(summary.distribution_type, 0.5)
    confidence = (summary.quality_score + distribution_confidence) / 2.0

    return SeaStatePattern(
        primary_category=category,
        category_index=index,
        secondary_tags=frozenset(tags),
        confidence=min(1.0, max(0.0, confidence)),
        risk_level=risk,
        visual_priority=frozenset(priority),
    )
