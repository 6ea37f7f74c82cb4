from __future__ import annotations

import bisect
import logging
import math

from ..config.tuning import DEFAULT_TUNING, HeuristicTuning
from ..models.base import AdaptiveRange, SeaStatePattern, StatisticalSummary, VariableSpec
from .errors import InvalidDomain

logger = logging.getLogger(__name__)


def climatological_default(variable: VariableSpec) -> AdaptiveRange:
    lo, hi = variable.default_range
    return AdaptiveRange.padded(lo, hi, confidence=0.0)


def snap_to_ladder(value: float, ladder: tuple[float, ...]) -> float:
    """Snap value up to the first rung >= value; values above the top rung are kept."""
    if not ladder:
        return value
    idx = bisect.bisect_left(ladder, value)
    if idx >= len(ladder):
        return value
    return float(ladder[idx])


def _checked_range(lo: float, hi: float, confidence: float, variable: VariableSpec) -> AdaptiveRange:
    try:
        return AdaptiveRange(min=float(lo), max=float(hi), confidence=float(confidence))
    except InvalidDomain as exc:
        logger.info("Repairing range for %s: %s", variable.id, exc)
        return AdaptiveRange.padded(lo, hi, confidence=confidence)


def compute_range(
    summary: StatisticalSummary,
    pattern: SeaStatePattern,
    variable: VariableSpec,
    *,
    tuning: HeuristicTuning = DEFAULT_TUNING,
) -> AdaptiveRange:
    if summary.is_degraded:
        logger.info("No valid samples for %s; using climatological range %s", variable.id, variable.default_range)
        return climatological_default(variable)

    if variable.is_angular:
        lo, hi = variable.default_range
        return AdaptiveRange.padded(lo, hi, confidence=pattern.confidence)

    p5 = summary.percentile(5)
    p95 = summary.percentile(95)
    if p5 is None or p95 is None:
        return climatological_default(variable)

    lo = max(0.0, p5) if variable.non_negative else p5
    hi = p95
    mean = summary.mean if summary.mean is not None else 0.0
    std = summary.std if summary.std is not None else 0.0

    if tuning.is_lowest(pattern.primary_category):
        hi = min(hi, mean + tuning.calm_max_sigmas * std)
    if tuning.is_safety_critical(pattern.primary_category):
        hi = max(hi, mean + tuning.severe_max_sigmas * std)
    if math.isfinite(hi):
        hi = snap_to_ladder(hi, variable.ceiling_ladder)

    return _checked_range(lo, hi, pattern.confidence, variable)
