"""Provider-aware rendering parameters for the ncWMS and ocean-plotter endpoints.

build() never raises: an infeasible primary query cascades to the secondary
provider, and failing that to a conservative default flagged as degraded.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

import httpx

from ..config.settings import DEFAULT_NCWMS_URL, DEFAULT_PLOTTER_URL
from ..config.tuning import DEFAULT_TUNING
from ..models.base import AdaptiveRange, ColorScheme, StyleQueryParams, VariableSpec
from .errors import QueryConstructionFailure
from .ranges import climatological_default

logger = logging.getLogger(__name__)

PROVIDER_NCWMS = "ncwms"
PROVIDER_PLOTTER = "plotter"
PROVIDER_ORDER: tuple[str, ...] = (PROVIDER_NCWMS, PROVIDER_PLOTTER)

PROVIDER_BASE_URLS: dict[str, str] = {
    PROVIDER_NCWMS: DEFAULT_NCWMS_URL,
    PROVIDER_PLOTTER: DEFAULT_PLOTTER_URL,
}

# palette id -> provider palette name; each table must stay one-to-one for parse_query.
PALETTE_NAMES: dict[str, dict[str, str]] = {
    PROVIDER_NCWMS: {
        "viridis": "psu-viridis",
        "plasma": "psu-plasma",
        "inferno": "psu-inferno",
        "magma": "psu-magma",
        "ylgnbu": "seq-YlGnBu",
        "blues": "seq-Blues",
        "spectral": "div-Spectral",
        "compass": "occam",
    },
    PROVIDER_PLOTTER: {
        "viridis": "viridis",
        "plasma": "plasma",
        "inferno": "inferno",
        "magma": "magma",
        "ylgnbu": "ylgnbu",
        "blues": "blues",
        "spectral": "spectral",
    },
}

PLOTTER_LAYER_MAP: dict[str, str] = {
    "hs": "40",
    "tm02": "43",
    "tpeak": "43",
    "dirm": "44",
}

NCWMS_STYLE_PREFIX = "default-scalar/"
RANGE_SIGNIFICANT_DIGITS = 6


def format_range(value_range: AdaptiveRange) -> str:
    """"min,max" with enough significant digits that the two bounds stay distinct."""
    for digits in range(RANGE_SIGNIFICANT_DIGITS, 18):
        lo = f"{value_range.min:.{digits}g}"
        hi = f"{value_range.max:.{digits}g}"
        if lo != hi:
            break
    return f"{lo},{hi}"


def out_of_range_modes(variable: VariableSpec) -> tuple[str, str]:
    """(above max, below min) color handling for a variable."""
    if variable.is_angular:
        return "transparent", "transparent"
    if variable.kind == "depth":
        # dry cells sit below the domain and must not be painted
        return "extend", "transparent"
    return "extend", "extend"


def plotter_step(value_range: AdaptiveRange) -> float:
    span = value_range.span
    if span <= 2:
        return 0.2
    if span <= 5:
        return 0.5
    if span <= 10:
        return 1.0
    if span <= 20:
        return 2.0
    return 5.0


def _provider_palette(provider: str, palette_id: str) -> str:
    name = PALETTE_NAMES[provider].get(palette_id)
    if name is None:
        raise QueryConstructionFailure(f"{provider} has no palette for {palette_id!r}")
    return name


def _check_range(value_range: AdaptiveRange) -> None:
    if not (math.isfinite(value_range.min) and math.isfinite(value_range.max)) or value_range.min >= value_range.max:
        raise QueryConstructionFailure(f"unusable range {value_range.min}..{value_range.max}")


def _build_ncwms(
    scheme: ColorScheme,
    value_range: AdaptiveRange,
    variable: VariableSpec,
    *,
    layer: str | None,
    time: str | None,
) -> StyleQueryParams:
    _check_range(value_range)
    if not layer:
        raise QueryConstructionFailure(f"no ncWMS layer configured for {variable.id!r}")
    palette_name = _provider_palette(PROVIDER_NCWMS, scheme.palette_id)
    above, below = out_of_range_modes(variable)
    extras: list[tuple[str, str]] = [
        ("LAYERS", layer),
        ("STYLES", f"{NCWMS_STYLE_PREFIX}{palette_name}"),
        ("OPACITY", str(int(round(scheme.transparency * 100)))),
    ]
    if time:
        extras.append(("TIME", time))
    return StyleQueryParams(
        provider=PROVIDER_NCWMS,
        palette_name=palette_name,
        range_string=format_range(value_range),
        band_count=scheme.num_color_bands,
        transparency_flag=True,
        above_max_color_mode=above,
        below_min_color_mode=below,
        provider_extras=tuple(extras),
    )


def _build_plotter(
    scheme: ColorScheme,
    value_range: AdaptiveRange,
    variable: VariableSpec,
    *,
    layer: str | None,
    time: str | None,
) -> StyleQueryParams:
    del layer, time
    _check_range(value_range)
    layer_map = PLOTTER_LAYER_MAP.get(variable.id)
    if layer_map is None:
        raise QueryConstructionFailure(f"plotter has no layer for {variable.id!r}")
    palette_name = _provider_palette(PROVIDER_PLOTTER, scheme.palette_id)
    above, below = out_of_range_modes(variable)
    return StyleQueryParams(
        provider=PROVIDER_PLOTTER,
        palette_name=palette_name,
        range_string=format_range(value_range),
        band_count=scheme.num_color_bands,
        transparency_flag=True,
        above_max_color_mode=above,
        below_min_color_mode=below,
        provider_extras=(
            ("layer_map", layer_map),
            ("mode", "standard"),
            ("step", f"{plotter_step(value_range):g}"),
            ("unit", variable.units),
        ),
    )


_BUILDERS: dict[str, Callable[..., StyleQueryParams]] = {
    PROVIDER_NCWMS: _build_ncwms,
    PROVIDER_PLOTTER: _build_plotter,
}


def conservative_default(variable: VariableSpec, *, layer: str | None = None, time: str | None = None) -> StyleQueryParams:
    value_range = climatological_default(variable)
    palette_name = PALETTE_NAMES[PROVIDER_NCWMS].get(variable.default_palette, "psu-viridis")
    above, below = out_of_range_modes(variable)
    extras: list[tuple[str, str]] = []
    if layer:
        extras.append(("LAYERS", layer))
    extras.append(("STYLES", f"{NCWMS_STYLE_PREFIX}{palette_name}"))
    if time:
        extras.append(("TIME", time))
    return StyleQueryParams(
        provider=PROVIDER_NCWMS,
        palette_name=palette_name,
        range_string=format_range(value_range),
        band_count=DEFAULT_TUNING.default_bands,
        transparency_flag=True,
        above_max_color_mode=above,
        below_min_color_mode=below,
        provider_extras=tuple(extras),
        degraded=True,
    )


def build(
    scheme: ColorScheme,
    value_range: AdaptiveRange,
    variable: VariableSpec,
    provider: str = PROVIDER_NCWMS,
    *,
    layer: str | None = None,
    time: str | None = None,
) -> StyleQueryParams:
    requested = str(provider or PROVIDER_NCWMS).strip().lower()
    if requested not in _BUILDERS:
        logger.warning("Unknown style provider %r; trying %s", provider, ", ".join(PROVIDER_ORDER))
        requested = PROVIDER_NCWMS
    order = (requested,) + tuple(name for name in PROVIDER_ORDER if name != requested)

    for name in order:
        try:
            return _BUILDERS[name](scheme, value_range, variable, layer=layer, time=time)
        except QueryConstructionFailure as exc:
            logger.warning("Style query via %s infeasible for %s: %s", name, variable.id, exc)

    logger.warning("Falling back to conservative style query for %s", variable.id)
    return conservative_default(variable, layer=layer, time=time)


def _range_bounds(range_string: str) -> tuple[str, str]:
    lo, _, hi = range_string.partition(",")
    return lo, hi


def query_pairs(params: StyleQueryParams) -> list[tuple[str, str]]:
    extras = dict(params.provider_extras)
    lo, hi = _range_bounds(params.range_string)
    if params.provider == PROVIDER_PLOTTER:
        return [
            ("layer_map", extras.get("layer_map", "")),
            ("mode", extras.get("mode", "standard")),
            ("min_color", lo),
            ("max_color", hi),
            ("step", extras.get("step", "1")),
            ("color", params.palette_name),
            ("bands", str(params.band_count)),
            ("unit", extras.get("unit", "")),
        ]

    pairs: list[tuple[str, str]] = [
        ("SERVICE", "WMS"),
        ("VERSION", "1.3.0"),
        ("REQUEST", "GetMap"),
    ]
    if "LAYERS" in extras:
        pairs.append(("LAYERS", extras["LAYERS"]))
    pairs.extend(
        [
            ("STYLES", extras.get("STYLES", f"{NCWMS_STYLE_PREFIX}{params.palette_name}")),
            ("COLORSCALERANGE", params.range_string),
            ("NUMCOLORBANDS", str(params.band_count)),
            ("TRANSPARENT", "TRUE" if params.transparency_flag else "FALSE"),
            ("ABOVEMAXCOLOR", params.above_max_color_mode),
            ("BELOWMINCOLOR", params.below_min_color_mode),
        ]
    )
    if "OPACITY" in extras:
        pairs.append(("OPACITY", extras["OPACITY"]))
    if "TIME" in extras:
        pairs.append(("TIME", extras["TIME"]))
    pairs.extend([("FORMAT", "image/png"), ("CRS", "EPSG:4326")])
    return pairs


def to_query_string(params: StyleQueryParams, base_url: str | None = None) -> str:
    base = base_url or PROVIDER_BASE_URLS.get(params.provider, DEFAULT_NCWMS_URL)
    return str(httpx.URL(base, params=query_pairs(params)))


@dataclass(frozen=True)
class ParsedStyle:
    provider: str
    palette_id: str
    min: float
    max: float


def _palette_id_for(provider: str, name: str) -> str:
    for palette_id, provider_name in PALETTE_NAMES[provider].items():
        if provider_name == name:
            return palette_id
    raise ValueError(f"Unknown {provider} palette name: {name!r}")


def parse_query(url: str) -> ParsedStyle:
    """Recover palette id and numeric bounds from a URL made by to_query_string."""
    params = httpx.URL(url).params
    if "COLORSCALERANGE" in params:
        style = params.get("STYLES", "")
        name = style[len(NCWMS_STYLE_PREFIX):] if style.startswith(NCWMS_STYLE_PREFIX) else style
        lo, hi = _range_bounds(params["COLORSCALERANGE"])
        return ParsedStyle(PROVIDER_NCWMS, _palette_id_for(PROVIDER_NCWMS, name), float(lo), float(hi))
    if "min_color" in params and "max_color" in params:
        return ParsedStyle(
            PROVIDER_PLOTTER,
            _palette_id_for(PROVIDER_PLOTTER, params.get("color", "")),
            float(params["min_color"]),
            float(params["max_color"]),
        )
    raise ValueError(f"Not a recognised style query: {url}")
