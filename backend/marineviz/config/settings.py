"""Environment-driven runtime settings.

Every knob reads a MARINEVIZ_* variable; invalid values are logged and replaced by
the default so a typo in a deployment never prevents startup.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from typing import Any

from ..services.errors import SettingsError
from .regions import DEFAULT_REGION, REGION_PRESETS, region_preset
from .tuning import DEFAULT_TUNING, HeuristicTuning

logger = logging.getLogger(__name__)

ENV_REGION = "MARINEVIZ_REGION"
ENV_NCWMS_URL = "MARINEVIZ_NCWMS_URL"
ENV_PLOTTER_URL = "MARINEVIZ_PLOTTER_URL"
ENV_SAMPLE_GRID_SIZE = "MARINEVIZ_SAMPLE_GRID_SIZE"
ENV_SAMPLE_WORKERS = "MARINEVIZ_SAMPLE_WORKERS"
ENV_SAMPLE_TIMEOUT_SECONDS = "MARINEVIZ_SAMPLE_TIMEOUT_SECONDS"
ENV_CACHE_MAX_ENTRIES = "MARINEVIZ_CACHE_MAX_ENTRIES"
ENV_STATS_TTL_SECONDS = "MARINEVIZ_STATS_TTL_SECONDS"
ENV_LEGEND_TTL_SECONDS = "MARINEVIZ_LEGEND_TTL_SECONDS"
ENV_QUERY_TTL_SECONDS = "MARINEVIZ_QUERY_TTL_SECONDS"
ENV_CACHE_SWEEP_SECONDS = "MARINEVIZ_CACHE_SWEEP_SECONDS"
ENV_INFLIGHT_WAIT_SECONDS = "MARINEVIZ_INFLIGHT_WAIT_SECONDS"
ENV_SWEEPER_ENABLED = "MARINEVIZ_SWEEPER_ENABLED"

DEFAULT_NCWMS_URL = "https://gem-ncwms-hpc.spc.int/ncWMS/wms"
DEFAULT_PLOTTER_URL = "https://ocean-plotter.spc.int/plotter/GetLegendGraphic"


def _int_from_env(env_name: str, fallback: int, *, min_value: int) -> int:
    raw = os.getenv(env_name, "").strip()
    if not raw:
        return fallback
    try:
        parsed = int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; using fallback=%d", env_name, raw, fallback)
        return fallback
    if parsed < min_value:
        logger.warning("%s=%d below minimum %d; using fallback=%d", env_name, parsed, min_value, fallback)
        return fallback
    return parsed


def _float_from_env(env_name: str, fallback: float, *, min_value: float) -> float:
    raw = os.getenv(env_name, "").strip()
    if not raw:
        return fallback
    try:
        parsed = float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; using fallback=%s", env_name, raw, fallback)
        return fallback
    if not math.isfinite(parsed) or parsed < min_value:
        logger.warning("Invalid %s=%r; using fallback=%s", env_name, raw, fallback)
        return fallback
    return parsed


def _bool_from_env(env_name: str, fallback: bool) -> bool:
    raw = os.getenv(env_name, "").strip().lower()
    if not raw:
        return fallback
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    logger.warning("Invalid %s=%r; using fallback=%s", env_name, raw, fallback)
    return fallback


@dataclass(frozen=True)
class CacheConfig:
    max_entries: int = 256
    stats_ttl_seconds: float = 300.0
    legend_ttl_seconds: float = 1800.0
    query_ttl_seconds: float = 1800.0
    sweep_interval_seconds: float = 300.0
    inflight_wait_seconds: float = 30.0


@dataclass(frozen=True)
class Settings:
    region: str = DEFAULT_REGION
    ncwms_url: str = DEFAULT_NCWMS_URL
    plotter_url: str = DEFAULT_PLOTTER_URL
    sample_grid_size: int = 10
    sample_workers: int = 16
    sample_timeout_seconds: float = 5.0
    sweeper_enabled: bool = True
    cache: CacheConfig = field(default_factory=CacheConfig)

    @property
    def region_preset(self) -> dict[str, Any]:
        return region_preset(self.region)

    @property
    def tuning(self) -> HeuristicTuning:
        return DEFAULT_TUNING.with_overrides(self.region_preset.get("tuning"))

    @property
    def utc_offset_hours(self) -> float | None:
        raw = self.region_preset.get("utc_offset_hours")
        return float(raw) if raw is not None else None

    def layer_for(self, variable: str) -> str | None:
        return self.region_preset.get("layers", {}).get(variable)

    @classmethod
    def from_env(cls) -> "Settings":
        region = os.getenv(ENV_REGION, DEFAULT_REGION).strip().lower() or DEFAULT_REGION
        if region not in REGION_PRESETS:
            raise SettingsError(
                f"{ENV_REGION}={region!r} is not a known region ({', '.join(sorted(REGION_PRESETS))})"
            )
        cache = CacheConfig(
            max_entries=_int_from_env(ENV_CACHE_MAX_ENTRIES, 256, min_value=1),
            stats_ttl_seconds=_float_from_env(ENV_STATS_TTL_SECONDS, 300.0, min_value=0.0),
            legend_ttl_seconds=_float_from_env(ENV_LEGEND_TTL_SECONDS, 1800.0, min_value=0.0),
            query_ttl_seconds=_float_from_env(ENV_QUERY_TTL_SECONDS, 1800.0, min_value=0.0),
            sweep_interval_seconds=_float_from_env(ENV_CACHE_SWEEP_SECONDS, 300.0, min_value=1.0),
            inflight_wait_seconds=_float_from_env(ENV_INFLIGHT_WAIT_SECONDS, 30.0, min_value=0.0),
        )
        return cls(
            region=region,
            ncwms_url=os.getenv(ENV_NCWMS_URL, "").strip() or DEFAULT_NCWMS_URL,
            plotter_url=os.getenv(ENV_PLOTTER_URL, "").strip() or DEFAULT_PLOTTER_URL,
            sample_grid_size=_int_from_env(ENV_SAMPLE_GRID_SIZE, 10, min_value=2),
            sample_workers=_int_from_env(ENV_SAMPLE_WORKERS, 16, min_value=1),
            sample_timeout_seconds=_float_from_env(ENV_SAMPLE_TIMEOUT_SECONDS, 5.0, min_value=0.1),
            sweeper_enabled=_bool_from_env(ENV_SWEEPER_ENABLED, True),
            cache=cache,
        )
