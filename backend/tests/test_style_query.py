from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from marineviz.config.tuning import DEFAULT_TUNING
from marineviz.models.base import AdaptiveRange, ColorScheme, ColorStop
from marineviz.models.registry import get_variable
from marineviz.services import style_query


def _scheme(palette_id: str = "viridis", bands: int = 261) -> ColorScheme:
    return ColorScheme(
        palette_id=palette_id,
        color_stops=(ColorStop(offset=0.5, value=1.0, color="#21918c"),),
        num_color_bands=bands,
        transparency=0.8,
    )


@pytest.mark.parametrize("palette_id", sorted(style_query.PALETTE_NAMES["ncwms"]))
def test_ncwms_round_trip_recovers_palette_and_bounds(palette_id: str) -> None:
    value_range = AdaptiveRange(0.17, 1.66)
    params = style_query.build(_scheme(palette_id), value_range, get_variable("hs"), layer="cook_forecast/hs")
    parsed = style_query.parse_query(style_query.to_query_string(params))

    assert params.provider == "ncwms"
    assert parsed.palette_id == palette_id
    assert parsed.min == pytest.approx(value_range.min, abs=1e-4)
    assert parsed.max == pytest.approx(value_range.max, abs=1e-4)


def test_plotter_round_trip() -> None:
    value_range = AdaptiveRange(0.123456, 3.98765)
    params = style_query.build(_scheme("plasma"), value_range, get_variable("hs"), "plotter")
    url = httpx.URL(style_query.to_query_string(params))
    parsed = style_query.parse_query(str(url))

    assert parsed.provider == "plotter"
    assert parsed.palette_id == "plasma"
    assert parsed.min == pytest.approx(0.1235, abs=1e-4)
    assert parsed.max == pytest.approx(3.9877, abs=1e-4)
    assert url.params["bands"] == "261"


def test_ncwms_query_string_fields() -> None:
    params = style_query.build(
        _scheme(),
        AdaptiveRange(0.0, 4.0),
        get_variable("hs"),
        layer="cook_forecast/hs",
        time="2026-03-01T00:00:00Z",
    )
    url = httpx.URL(style_query.to_query_string(params))

    assert url.host == "gem-ncwms-hpc.spc.int"
    assert url.params["LAYERS"] == "cook_forecast/hs"
    assert url.params["STYLES"] == "default-scalar/psu-viridis"
    assert url.params["COLORSCALERANGE"] == "0,4"
    assert url.params["NUMCOLORBANDS"] == "261"
    assert url.params["ABOVEMAXCOLOR"] == "extend"
    assert url.params["OPACITY"] == "80"
    assert url.params["TIME"] == "2026-03-01T00:00:00Z"


def test_out_of_range_modes_by_variable_kind() -> None:
    assert style_query.out_of_range_modes(get_variable("hs")) == ("extend", "extend")
    assert style_query.out_of_range_modes(get_variable("dirm")) == ("transparent", "transparent")
    assert style_query.out_of_range_modes(get_variable("inundation")) == ("extend", "transparent")


def test_missing_primary_layer_falls_back_to_plotter() -> None:
    params = style_query.build(_scheme(), AdaptiveRange(0.0, 4.0), get_variable("hs"))

    assert params.provider == "plotter"
    assert dict(params.provider_extras)["layer_map"] == "40"
    assert not params.degraded


def test_plotter_without_circular_palette_falls_back_to_primary() -> None:
    params = style_query.build(
        _scheme("compass"),
        AdaptiveRange(0.0, 360.0),
        get_variable("dirm"),
        "plotter",
        layer="cook_forecast/dirm",
    )
    assert params.provider == "ncwms"
    assert params.palette_name == "occam"


def test_both_providers_infeasible_gives_conservative_default() -> None:
    params = style_query.build(_scheme(), AdaptiveRange(0.0, 1.0), get_variable("inundation"))

    assert params.degraded
    assert params.range_string == "0,2"
    assert params.band_count == DEFAULT_TUNING.default_bands
    assert params.palette_name == "seq-Blues"


def test_unknown_provider_does_not_raise() -> None:
    params = style_query.build(_scheme(), AdaptiveRange(0.0, 4.0), get_variable("hs"), "mapserver", layer="x/hs")
    assert params.provider == "ncwms"


@pytest.mark.parametrize(
    ("span", "step"),
    [(1.5, 0.2), (4.0, 0.5), (9.0, 1.0), (20.0, 2.0), (360.0, 5.0)],
)
def test_plotter_step(span: float, step: float) -> None:
    assert style_query.plotter_step(AdaptiveRange(0.0, span)) == step


def test_parse_query_rejects_foreign_urls() -> None:
    with pytest.raises(ValueError):
        style_query.parse_query("https://example.com/wms?foo=bar")


def test_tiny_range_keeps_distinct_bounds() -> None:
    value_range = AdaptiveRange.padded(1e-5, 1e-5)
    params = style_query.build(_scheme(), value_range, get_variable("hs"), layer="cook_forecast/hs")
    lo, hi = params.range_string.split(",")

    assert lo != hi
    assert float(lo) == pytest.approx(value_range.min)
    assert float(hi) == pytest.approx(value_range.max)


def test_near_equal_bounds_gain_digits_until_distinct() -> None:
    assert style_query.format_range(AdaptiveRange(1234567.1, 1234567.2)) == "1234567.1,1234567.2"
    assert style_query.format_range(AdaptiveRange(0.17, 1.66)) == "0.17,1.66"
