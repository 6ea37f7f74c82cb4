from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable

from ..config.regions import region_bbox
from ..config.settings import Settings
from ..models.base import Bounds, RenderSpec
from ..models.registry import get_variable
from . import style_query
from .cache import CacheLayer
from .classifier import classify
from .clock import Clock, SystemClock
from .color_scheme import optimize
from .errors import SamplingFailure
from .legend import build_legend_spec, render_legend
from .ranges import compute_range
from .sampling import CancelToken, PointSampler, WMSPointSampler, fan_out
from .statistics import analyze
from .temporal import analyze_time

logger = logging.getLogger(__name__)


def parse_time(value: datetime | str) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            raise ValueError("time is required")
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_bounds(value: Iterable[Any] | str) -> Bounds:
    if isinstance(value, str):
        parts: list[Any] = [part for part in value.split(",") if part.strip()]
    else:
        parts = list(value)
    if len(parts) != 4:
        raise ValueError(f"bounds need 4 values (min_lon,min_lat,max_lon,max_lat), got {len(parts)}")
    min_lon, min_lat, max_lon, max_lat = (float(part) for part in parts)
    if not all(math.isfinite(v) for v in (min_lon, min_lat, max_lon, max_lat)):
        raise ValueError("bounds must be finite")
    if min_lon >= max_lon or min_lat >= max_lat:
        raise ValueError(f"bounds must satisfy min < max, got {value!r}")
    return min_lon, min_lat, max_lon, max_lat


class RenderPipeline:
    """(variable, time, bounds) -> RenderSpec, with caching and degradation."""

    def __init__(
        self,
        sampler: PointSampler,
        *,
        settings: Settings | None = None,
        cache: CacheLayer | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.sampler = sampler
        self.clock = clock or SystemClock()
        self.cache = cache or CacheLayer(self.settings.cache, clock=self.clock)
        self.tuning = self.settings.tuning

    def _sample(
        self,
        layer: str | None,
        time_text: str,
        bounds: Bounds,
        cancel_token: CancelToken | None,
    ) -> tuple[float | None, ...]:
        if not layer:
            raise SamplingFailure("no sampling layer configured")
        values = fan_out(
            self.sampler,
            layer,
            time_text,
            bounds,
            grid_size=self.settings.sample_grid_size,
            workers=self.settings.sample_workers,
            cancel_token=cancel_token,
        )
        if all(value is None for value in values):
            raise SamplingFailure(f"no grid point returned a value for {layer} at {time_text}")
        return tuple(values)

    def build(
        self,
        variable: str,
        time: datetime | str,
        bounds: Iterable[Any] | str | None = None,
        *,
        orientation: str = "vertical",
        size_px: Iterable[int] | None = None,
        provider: str = style_query.PROVIDER_NCWMS,
        cancel_token: CancelToken | None = None,
    ) -> RenderSpec:
        self.cache.maybe_sweep()
        timestamp = parse_time(time)
        time_text = format_time(timestamp)
        resolved_bounds = parse_bounds(bounds) if bounds is not None else region_bbox(self.settings.region)
        spec = get_variable(variable)
        layer = self.settings.layer_for(spec.id)
        if layer is None and "/" in str(variable):
            layer = str(variable).strip()

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        degraded = False
        sample_key = (spec.id, layer, time_text, resolved_bounds, self.settings.sample_grid_size)
        try:
            samples: tuple[float | None, ...] = self.cache.samples.get_or_compute(
                sample_key,
                lambda: self._sample(layer, time_text, resolved_bounds, cancel_token),
            )
        except SamplingFailure as exc:
            logger.warning("Sampling failed for %s at %s: %s; using climatological defaults", spec.id, time_text, exc)
            samples = ()
            degraded = True

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        summary = analyze(samples, plausible_range=spec.plausible_range, tuning=self.tuning)
        pattern = classify(
            summary,
            timestamp,
            tuning=self.tuning,
            utc_offset_hours=self.settings.utc_offset_hours,
            variable=spec,
        )
        temporal_context = analyze_time(
            timestamp,
            self.clock.now(),
            utc_offset_hours=self.settings.utc_offset_hours,
            latitude=(resolved_bounds[1] + resolved_bounds[3]) / 2.0,
        )
        value_range = compute_range(summary, pattern, spec, tuning=self.tuning)
        scheme = optimize(summary, pattern, spec, tuning=self.tuning)

        legend_spec = build_legend_spec(scheme, value_range, spec, orientation=orientation, size_px=size_px)
        legend_png = self.cache.legends.get_or_compute(
            (spec.id, time_text, resolved_bounds, legend_spec),
            lambda: render_legend(legend_spec),
        )

        def _query() -> tuple[Any, str]:
            params = style_query.build(scheme, value_range, spec, provider, layer=layer, time=time_text)
            base_url = self.settings.ncwms_url if params.provider == style_query.PROVIDER_NCWMS else self.settings.plotter_url
            return params, style_query.to_query_string(params, base_url)

        params, query_string = self.cache.queries.get_or_compute(
            (spec.id, time_text, resolved_bounds, provider, layer, scheme, value_range),
            _query,
        )

        degraded = degraded or summary.is_degraded or params.degraded
        return RenderSpec(
            variable=spec.id,
            time=time_text,
            bounds=resolved_bounds,
            summary=summary,
            pattern=pattern,
            color_scheme=scheme,
            adaptive_range=value_range,
            legend=legend_spec,
            legend_png=legend_png,
            style_query=params,
            query_string=query_string,
            degraded=degraded,
            temporal_context=temporal_context,
        )

    def close(self) -> None:
        self.cache.stop_sweeper()
        close = getattr(self.sampler, "close", None)
        if callable(close):
            close()


def create_pipeline(settings: Settings | None = None, *, start_sweeper: bool | None = None) -> RenderPipeline:
    resolved = settings or Settings.from_env()
    sampler = WMSPointSampler(resolved.ncwms_url, timeout_seconds=resolved.sample_timeout_seconds)
    pipeline = RenderPipeline(sampler, settings=resolved)
    if resolved.sweeper_enabled if start_sweeper is None else start_sweeper:
        pipeline.cache.start_sweeper()
    logger.info(
        "Render pipeline ready: region=%s ncwms=%s grid=%dx%d workers=%d",
        resolved.region,
        resolved.ncwms_url,
        resolved.sample_grid_size,
        resolved.sample_grid_size,
        resolved.sample_workers,
    )
    return pipeline
