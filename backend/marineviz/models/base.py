from __future__ import annotations

import base64
import math
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from ..services.errors import InvalidDomain

Bounds = tuple[float, float, float, float]
DistributionType = Literal["normal", "logNormal", "unknown"]
Orientation = Literal["horizontal", "vertical"]

# Relative pad applied around a degenerate domain; zero-valued bounds use the absolute pad.
DOMAIN_RELATIVE_PAD = 0.05
DOMAIN_ZERO_PAD = 0.5


@dataclass(frozen=True)
class StatisticalSummary:
    count: int
    total: int
    mean: Optional[float] = None
    median: Optional[float] = None
    std: Optional[float] = None
    skewness: Optional[float] = None
    excess_kurtosis: Optional[float] = None
    percentiles: dict[int, float] = field(default_factory=dict)
    min: Optional[float] = None
    max: Optional[float] = None
    outliers: tuple[float, ...] = ()
    upper_outliers: tuple[float, ...] = ()
    clusters: Optional[tuple[tuple[float, ...], ...]] = None
    distribution_type: DistributionType = "unknown"
    quality_score: float = 0.0
    spatial_variability: Optional[float] = None

    @property
    def is_degraded(self) -> bool:
        return self.count == 0

    def percentile(self, p: int) -> Optional[float]:
        return self.percentiles.get(p)

    @property
    def coefficient_of_variation(self) -> Optional[float]:
        if self.mean is None or self.std is None or self.mean <= 0:
            return None
        return self.std / self.mean

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total": self.total,
            "mean": self.mean,
            "median": self.median,
            "std": self.std,
            "skewness": self.skewness,
            "excess_kurtosis": self.excess_kurtosis,
            "percentiles": {str(p): v for p, v in sorted(self.percentiles.items())},
            "min": self.min,
            "max": self.max,
            "outliers": list(self.outliers),
            "clusters": [list(c) for c in self.clusters] if self.clusters is not None else None,
            "distribution_type": self.distribution_type,
            "quality_score": self.quality_score,
            "spatial_variability": self.spatial_variability,
        }


@dataclass(frozen=True)
class SeaStatePattern:
    primary_category: str
    category_index: int
    secondary_tags: frozenset[str] = frozenset()
    confidence: float = 0.0
    risk_level: int = 1
    visual_priority: frozenset[str] = frozenset()

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary_category": self.primary_category,
            "category_index": self.category_index,
            "secondary_tags": sorted(self.secondary_tags),
            "confidence": self.confidence,
            "risk_level": self.risk_level,
            "visual_priority": sorted(self.visual_priority),
        }


@dataclass(frozen=True)
class TemporalContext:
    local_hour: int
    time_of_day: str
    season: str
    forecast_horizon: str
    lead_hours: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "local_hour": self.local_hour,
            "time_of_day": self.time_of_day,
            "season": self.season,
            "forecast_horizon": self.forecast_horizon,
            "lead_hours": self.lead_hours,
        }


@dataclass(frozen=True)
class ColorStop:
    offset: float
    value: float
    color: str


@dataclass(frozen=True)
class ColorScheme:
    palette_id: str
    color_stops: tuple[ColorStop, ...]
    num_color_bands: int
    transparency: float
    contrast_multiplier: float = 1.0

    def __post_init__(self) -> None:
        if self.num_color_bands <= 0:
            raise ValueError(f"num_color_bands must be positive, got {self.num_color_bands}")
        ordered = tuple(sorted(self.color_stops, key=lambda stop: stop.offset))
        object.__setattr__(self, "color_stops", ordered)

    def to_dict(self) -> dict[str, Any]:
        return {
            "palette_id": self.palette_id,
            "color_stops": [
                {"offset": s.offset, "value": s.value, "color": s.color} for s in self.color_stops
            ],
            "num_color_bands": self.num_color_bands,
            "transparency": self.transparency,
            "contrast_multiplier": self.contrast_multiplier,
        }


def _pad_amount(value: float) -> float:
    return abs(value) * DOMAIN_RELATIVE_PAD if value != 0 else DOMAIN_ZERO_PAD


@dataclass(frozen=True)
class AdaptiveRange:
    min: float
    max: float
    confidence: float = 0.0

    def __post_init__(self) -> None:
        if not (math.isfinite(self.min) and math.isfinite(self.max)) or self.min >= self.max:
            raise InvalidDomain(f"AdaptiveRange requires finite min < max, got ({self.min}, {self.max})")

    @classmethod
    def padded(cls, min_value: float, max_value: float, confidence: float = 0.0) -> "AdaptiveRange":
        """Build a range that always satisfies min < max.

        Swapped bounds are reordered; equal bounds are widened symmetrically by 5% of
        the value (0.5 when the value is zero); a non-finite bound is replaced by
        the other bound before padding. Both non-finite gives (-0.5, 0.5).
        """
        lo = float(min_value)
        hi = float(max_value)
        if not math.isfinite(lo) and not math.isfinite(hi):
            lo = hi = 0.0
        elif not math.isfinite(lo):
            lo = hi
        elif not math.isfinite(hi):
            hi = lo
        if lo > hi:
            lo, hi = hi, lo
        if lo == hi:
            pad = _pad_amount(lo)
            lo, hi = lo - pad, hi + pad
        return cls(min=lo, max=hi, confidence=float(confidence))

    @property
    def span(self) -> float:
        return self.max - self.min

    def to_dict(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max, "confidence": self.confidence}


@dataclass(frozen=True)
class LegendSpec:
    orientation: Orientation
    size_px: tuple[int, int]
    title: str
    tick_values: tuple[float, ...]
    color_scheme: ColorScheme
    domain: AdaptiveRange
    precision: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "orientation": self.orientation,
            "size_px": list(self.size_px),
            "title": self.title,
            "tick_values": list(self.tick_values),
            "domain": self.domain.to_dict(),
            "precision": self.precision,
        }


@dataclass(frozen=True)
class StyleQueryParams:
    provider: str
    palette_name: str
    range_string: str
    band_count: int
    transparency_flag: bool
    above_max_color_mode: str
    below_min_color_mode: str
    provider_extras: tuple[tuple[str, str], ...] = ()
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "palette_name": self.palette_name,
            "range_string": self.range_string,
            "band_count": self.band_count,
            "transparency_flag": self.transparency_flag,
            "above_max_color_mode": self.above_max_color_mode,
            "below_min_color_mode": self.below_min_color_mode,
            "provider_extras": dict(self.provider_extras),
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class RenderSpec:
    variable: str
    time: str
    bounds: Bounds
    summary: StatisticalSummary
    pattern: SeaStatePattern
    color_scheme: ColorScheme
    adaptive_range: AdaptiveRange
    legend: LegendSpec
    legend_png: bytes
    style_query: StyleQueryParams
    query_string: str
    degraded: bool = False
    temporal_context: Optional[TemporalContext] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "variable": self.variable,
            "time": self.time,
            "bounds": list(self.bounds),
            "summary": self.summary.to_dict(),
            "pattern": self.pattern.to_dict(),
            "color_scheme": self.color_scheme.to_dict(),
            "adaptive_range": self.adaptive_range.to_dict(),
            "legend": self.legend.to_dict(),
            "legend_png_base64": base64.b64encode(self.legend_png).decode("ascii"),
            "style_query": self.style_query.to_dict(),
            "query_string": self.query_string,
            "degraded": self.degraded,
            "temporal_context": self.temporal_context.to_dict() if self.temporal_context is not None else None,
        }


VariableKind = Literal["magnitude", "angular", "depth"]


@dataclass(frozen=True)
class VariableSpec:
    id: str
    name: str
    kind: VariableKind = "magnitude"
    units: str = ""
    default_palette: str = "viridis"
    # Used instead of default_palette when extreme events are present at sub-warning risk.
    alternate_palette: str = "plasma"
    default_range: tuple[float, float] = (0.0, 1.0)
    plausible_range: tuple[float, float] = (0.0, 20.0)
    precision: int = 1
    ceiling_ladder: tuple[float, ...] = ()
    # Which category ladder classifies the mean ("height", "period"); None skips classification.
    sea_state_scale: Optional[str] = "height"
    # Only variables that are themselves a hazard measure switch to the warning palette.
    storm_warning: bool = False
    legend_title: Optional[str] = None
    order: Optional[int] = None
    generic: bool = False

    @property
    def is_angular(self) -> bool:
        return self.kind == "angular"

    @property
    def non_negative(self) -> bool:
        return self.kind in {"magnitude", "depth"}

    @property
    def title(self) -> str:
        if self.legend_title:
            return self.legend_title
        return f"{self.name} ({self.units})" if self.units else self.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "units": self.units,
            "default_palette": self.default_palette,
            "default_range": list(self.default_range),
            "precision": self.precision,
            "legend_title": self.title,
            "order": self.order,
        }
