"""Descriptive statistics over a sparse grid sample.

analyze() never raises on bad input: non-finite and missing values are dropped,
and a sample with nothing left yields a degraded summary (quality 0, no stats).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Any

import numpy as np

from ..config.tuning import DEFAULT_TUNING, HeuristicTuning
from ..models.base import DistributionType, StatisticalSummary

logger = logging.getLogger(__name__)

PERCENTILES: tuple[int, ...] = (5, 10, 25, 50, 75, 80, 90, 95, 99)


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def finite_values(samples: Iterable[Any]) -> np.ndarray:
    values = [v for v in (_to_float(raw) for raw in samples) if v is not None]
    return np.asarray(values, dtype=np.float64)


def _percentiles(sorted_values: np.ndarray) -> dict[int, float]:
    # numpy's default "linear" method interpolates at p/100 * (n - 1)
    raw = np.percentile(sorted_values, PERCENTILES)
    # float noise must never make a higher percentile smaller
    monotone = np.maximum.accumulate(raw)
    return {p: float(v) for p, v in zip(PERCENTILES, monotone)}


def _moments(values: np.ndarray, mean: float, std: float) -> tuple[float, float]:
    if std <= 0:
        return 0.0, 0.0
    z = (values - mean) / std
    skewness = float(np.mean(z**3))
    excess_kurtosis = float(np.mean(z**4) - 3.0)
    return skewness, excess_kurtosis


def _classify_distribution(skewness: float, excess_kurtosis: float, tuning: HeuristicTuning) -> DistributionType:
    if abs(skewness) < tuning.normal_skew_limit and abs(excess_kurtosis) < tuning.normal_kurtosis_limit:
        return "normal"
    if skewness > tuning.lognormal_skew:
        return "logNormal"
    return "unknown"


def find_clusters(sorted_values: np.ndarray, *, gap_sigmas: float = 2.0) -> tuple[tuple[float, ...], ...] | None:
    """Split sorted values wherever a gap exceeds mean(gap) + gap_sigmas * std(gap).

    Returns None when fewer than two clusters are found.
    """
    if sorted_values.size < 3:
        return None
    gaps = np.diff(sorted_values)
    threshold = float(np.mean(gaps) + gap_sigmas * np.std(gaps))
    breaks = np.flatnonzero(gaps > threshold)
    if breaks.size == 0:
        return None
    clusters = np.split(sorted_values, breaks + 1)
    return tuple(tuple(float(v) for v in chunk) for chunk in clusters)


def tukey_outliers(
    values: np.ndarray,
    q1: float,
    q3: float,
    *,
    fence: float = 1.5,
) -> tuple[tuple[float, ...], tuple[float, ...]]:
    iqr = q3 - q1
    lower = q1 - fence * iqr
    upper = q3 + fence * iqr
    low = sorted(float(v) for v in values if v < lower)
    high = sorted(float(v) for v in values if v > upper)
    return tuple(low + high), tuple(high)


def _reasonableness(values: np.ndarray, plausible_range: tuple[float, float]) -> float:
    lo, hi = plausible_range
    inside = np.count_nonzero((values >= lo) & (values <= hi))
    return float(inside) / float(values.size)


def analyze(
    samples: Iterable[Any],
    *,
    plausible_range: tuple[float, float] = (0.0, 20.0),
    tuning: HeuristicTuning = DEFAULT_TUNING,
) -> StatisticalSummary:
    raw = list(samples)
    total = len(raw)
    values = finite_values(raw)
    count = int(values.size)

    if count == 0:
        if total:
            logger.debug("No finite values among %d samples; returning degraded summary", total)
        return StatisticalSummary(count=0, total=total, quality_score=0.0)

    ordered = np.sort(values)
    mean = float(np.mean(ordered))
    std = float(np.std(ordered))
    skewness, excess_kurtosis = _moments(ordered, mean, std)
    percentiles = _percentiles(ordered)
    outliers, upper_outliers = tukey_outliers(
        ordered,
        percentiles[25],
        percentiles[75],
        fence=tuning.tukey_fence,
    )

    completeness = count / total
    quality = (completeness + _reasonableness(ordered, plausible_range)) / 2.0

    return StatisticalSummary(
        count=count,
        total=total,
        mean=mean,
        median=percentiles[50],
        std=std,
        skewness=skewness,
        excess_kurtosis=excess_kurtosis,
        percentiles=percentiles,
        min=float(ordered[0]),
        max=float(ordered[-1]),
        outliers=outliers,
        upper_outliers=upper_outliers,
        clusters=find_clusters(ordered, gap_sigmas=tuning.cluster_gap_sigmas),
        distribution_type=_classify_distribution(skewness, excess_kurtosis, tuning),
        quality_score=min(1.0, max(0.0, quality)),
        spatial_variability=(std / mean) if mean > 0 else None,
    )


def has_heavy_tail(summary: StatisticalSummary, tuning: HeuristicTuning = DEFAULT_TUNING) -> bool:
    """True when the sample shows extreme events.

    Excess kurtosis alone cannot exceed 3 for small grids (its ceiling is roughly
    n - 3 for n points), so an upper Tukey outlier also counts.
    """
    if summary.is_degraded:
        return False
    if summary.excess_kurtosis is not None and summary.excess_kurtosis > tuning.excess_kurtosis_extreme:
        return True
    return bool(summary.upper_outliers)
