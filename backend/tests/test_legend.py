from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest
from PIL import Image

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from marineviz.models.base import AdaptiveRange, ColorScheme, ColorStop
from marineviz.models.registry import get_variable
from marineviz.services import legend

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def _grey_scheme(transparency: float = 1.0) -> ColorScheme:
    return ColorScheme(
        palette_id="viridis",
        color_stops=(
            ColorStop(offset=0.0, value=0.0, color="#000000"),
            ColorStop(offset=1.0, value=10.0, color="#ffffff"),
        ),
        num_color_bands=500,
        transparency=transparency,
    )


def _open(png: bytes) -> Image.Image:
    return Image.open(io.BytesIO(png)).convert("RGBA")


def test_render_is_deterministic() -> None:
    domain = AdaptiveRange(0.0, 10.0)
    first = legend.render(_grey_scheme(), domain, "horizontal", title="Wave Height (m)")
    second = legend.render(_grey_scheme(), domain, "horizontal", title="Wave Height (m)")

    assert first.startswith(PNG_MAGIC)
    assert first == second


def test_default_sizes_by_orientation() -> None:
    domain = AdaptiveRange(0.0, 10.0)
    assert _open(legend.render(_grey_scheme(), domain, "horizontal")).size == (400, 60)
    assert _open(legend.render(_grey_scheme(), domain, "vertical")).size == (70, 300)
    assert _open(legend.render(_grey_scheme(), domain, "vertical", (90, 200))).size == (90, 200)


def test_vertical_legend_puts_highest_value_on_top() -> None:
    image = _open(legend.render(_grey_scheme(), AdaptiveRange(0.0, 10.0), "vertical"))
    x = legend.PAD + 2

    top = image.getpixel((x, legend.PAD + 1))
    bottom = image.getpixel((x, 300 - legend.PAD - 2))
    assert top[0] > 200
    assert bottom[0] < 50


def test_horizontal_legend_runs_low_to_high() -> None:
    image = _open(legend.render(_grey_scheme(), AdaptiveRange(0.0, 10.0), "horizontal"))

    left = image.getpixel((legend.PAD + 1, 6))
    right = image.getpixel((400 - legend.PAD - 2, 6))
    assert left[0] < 50
    assert right[0] > 200


def test_bar_alpha_follows_transparency() -> None:
    image = _open(legend.render(_grey_scheme(0.8), AdaptiveRange(0.0, 10.0), "horizontal"))
    assert image.getpixel((200, 6))[3] == 204


def test_degenerate_domain_does_not_raise() -> None:
    png = legend.render(_grey_scheme(), (5.0, 5.0), "vertical")
    assert png.startswith(PNG_MAGIC)


def test_unknown_orientation_is_rejected() -> None:
    with pytest.raises(ValueError):
        legend.render(_grey_scheme(), AdaptiveRange(0.0, 1.0), "diagonal")


def test_build_legend_spec_uses_variable_metadata() -> None:
    spec = legend.build_legend_spec(
        _grey_scheme(),
        AdaptiveRange(0.0, 10.0),
        get_variable("hs"),
        orientation="horizontal",
    )

    assert spec.title == "Wave Height (m)"
    assert spec.precision == 1
    assert spec.size_px == (400, 60)
    assert list(spec.tick_values) == [0, 2, 4, 6, 8, 10]


def test_gradient_anchors_clamp_out_of_domain_stops() -> None:
    scheme = ColorScheme(
        palette_id="viridis",
        color_stops=(
            ColorStop(offset=0.05, value=-5.0, color="#111111"),
            ColorStop(offset=0.5, value=5.0, color="#555555"),
            ColorStop(offset=0.95, value=50.0, color="#999999"),
        ),
        num_color_bands=10,
        transparency=1.0,
    )
    positions, colors = legend.gradient_anchors(scheme, AdaptiveRange(0.0, 10.0))

    assert positions == [0.0, 0.5, 1.0]
    assert colors == ["#111111", "#555555", "#999999"]
