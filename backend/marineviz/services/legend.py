"""Legend raster: a banded gradient bar with title, tick marks and labels.

Output bytes depend only on the inputs (no timestamps or metadata chunks), so
rendered legends can be cached and compared byte-for-byte.
"""

from __future__ import annotations

import io
from typing import Iterable

import numpy as np
from PIL import Image, ImageDraw, ImageEnhance, ImageFont

from ..models.base import AdaptiveRange, ColorScheme, LegendSpec, Orientation, VariableSpec
from .colormaps import format_tick_label, generate_ticks, interpolate_stops, sample_palette

DEFAULT_SIZES: dict[str, tuple[int, int]] = {
    "horizontal": (400, 60),
    "vertical": (70, 300),
}
MIN_SIZE = (48, 48)
TEXT_COLOR = (31, 41, 55, 255)
TICK_LENGTH = 6
PAD = 6
BAR_THICKNESS_VERTICAL = 16


def _normalize_orientation(orientation: str | None) -> Orientation:
    value = str(orientation or "vertical").strip().lower()
    if value not in DEFAULT_SIZES:
        raise ValueError(f"Unsupported legend orientation: {orientation!r}")
    return value  # type: ignore[return-value]


def _normalize_size(orientation: Orientation, size_px: Iterable[int] | None) -> tuple[int, int]:
    if size_px is None:
        return DEFAULT_SIZES[orientation]
    width, height = (int(v) for v in size_px)
    return max(MIN_SIZE[0], width), max(MIN_SIZE[1], height)


def _as_domain(domain: AdaptiveRange | tuple[float, float]) -> AdaptiveRange:
    if isinstance(domain, AdaptiveRange):
        return domain
    lo, hi = domain
    return AdaptiveRange.padded(lo, hi)


def build_legend_spec(
    scheme: ColorScheme,
    domain: AdaptiveRange | tuple[float, float],
    variable: VariableSpec,
    *,
    orientation: str | None = "vertical",
    size_px: Iterable[int] | None = None,
    tick_count: int = 5,
) -> LegendSpec:
    resolved_orientation = _normalize_orientation(orientation)
    resolved_domain = _as_domain(domain)
    return LegendSpec(
        orientation=resolved_orientation,
        size_px=_normalize_size(resolved_orientation, size_px),
        title=variable.title,
        tick_values=tuple(generate_ticks(resolved_domain.min, resolved_domain.max, tick_count)),
        color_scheme=scheme,
        domain=resolved_domain,
        precision=variable.precision,
    )


def gradient_anchors(scheme: ColorScheme, domain: AdaptiveRange) -> tuple[list[float], list[str]]:
    """Stop positions in [0, 1] across the domain, strictly increasing, with their colors.

    Stop values outside the domain are clamped to its ends. The palette's own end
    colors anchor 0 and 1 when no stop lands there.
    """
    positions: list[float] = []
    colors: list[str] = []
    for stop in scheme.color_stops:
        t = (stop.value - domain.min) / domain.span
        t = min(1.0, max(0.0, t))
        if positions and t <= positions[-1]:
            continue
        positions.append(t)
        colors.append(stop.color)

    if not positions or positions[0] > 0.0:
        positions.insert(0, 0.0)
        colors.insert(0, sample_palette(scheme.palette_id, 0.0))
    if positions[-1] < 1.0:
        positions.append(1.0)
        colors.append(sample_palette(scheme.palette_id, 1.0))
    return positions, colors


def _bar_pixels(scheme: ColorScheme, domain: AdaptiveRange, length: int) -> np.ndarray:
    """RGB colors for each pixel along the bar, low value first."""
    t = (np.arange(length, dtype=np.float64) + 0.5) / float(length)
    bands = scheme.num_color_bands
    t = (np.floor(t * bands) + 0.5) / bands
    positions, colors = gradient_anchors(scheme, domain)
    return interpolate_stops(np.clip(t, 0.0, 1.0), positions, colors)


def _bar_image(scheme: ColorScheme, domain: AdaptiveRange, length: int, thickness: int, vertical: bool) -> Image.Image:
    rgb = np.clip(np.rint(_bar_pixels(scheme, domain, length)), 0, 255).astype(np.uint8)
    if vertical:
        strip = np.repeat(rgb[::-1, np.newaxis, :], thickness, axis=1)
    else:
        strip = np.repeat(rgb[np.newaxis, :, :], thickness, axis=0)
    bar = Image.fromarray(strip)
    if abs(scheme.contrast_multiplier - 1.0) > 1e-9:
        bar = ImageEnhance.Contrast(bar).enhance(scheme.contrast_multiplier)
    alpha = int(round(255 * min(1.0, max(0.0, scheme.transparency))))
    bar.putalpha(alpha)
    return bar


def _text_size(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont) -> tuple[int, int]:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    return int(right - left), int(bottom - top)


def render_legend(spec: LegendSpec) -> bytes:
    width, height = spec.size_px
    domain = spec.domain
    vertical = spec.orientation == "vertical"
    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()

    title_h = 0
    if spec.title:
        title_w, title_h = _text_size(draw, spec.title, font)
        title_x = PAD if vertical else max(0, (width - title_w) // 2)
        draw.text((title_x, 2), spec.title, fill=TEXT_COLOR, font=font)
        title_h += 4

    labels = [format_tick_label(v, spec.precision) for v in spec.tick_values]
    label_h = max((_text_size(draw, text, font)[1] for text in labels), default=0)

    if vertical:
        x0 = PAD
        y0 = title_h + PAD
        y1 = max(y0 + 2, height - PAD)
        length = y1 - y0
        thickness = min(BAR_THICKNESS_VERTICAL, max(2, width - 2 * PAD))
        image.alpha_composite(_bar_image(spec.color_scheme, domain, length, thickness, True), (x0, y0))
        for value, text in zip(spec.tick_values, labels):
            frac = (value - domain.min) / domain.span
            y = int(round(y1 - 1 - frac * (length - 1)))
            tick_x0 = x0 + thickness
            draw.line([(tick_x0, y), (tick_x0 + TICK_LENGTH, y)], fill=TEXT_COLOR, width=1)
            text_y = min(max(0, y - label_h // 2), height - label_h - 1)
            draw.text((tick_x0 + TICK_LENGTH + 2, text_y), text, fill=TEXT_COLOR, font=font)
    else:
        x0 = PAD
        x1 = max(x0 + 2, width - PAD)
        length = x1 - x0
        y0 = title_h + 2
        thickness = max(2, height - y0 - TICK_LENGTH - label_h - 4)
        image.alpha_composite(_bar_image(spec.color_scheme, domain, length, thickness, False), (x0, y0))
        tick_y0 = y0 + thickness
        for value, text in zip(spec.tick_values, labels):
            frac = (value - domain.min) / domain.span
            x = int(round(x0 + frac * (length - 1)))
            draw.line([(x, tick_y0), (x, tick_y0 + TICK_LENGTH)], fill=TEXT_COLOR, width=1)
            text_w, _ = _text_size(draw, text, font)
            text_x = min(max(0, x - text_w // 2), max(0, width - text_w))
            draw.text((text_x, tick_y0 + TICK_LENGTH + 1), text, fill=TEXT_COLOR, font=font)

    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def render(
    scheme: ColorScheme,
    domain: AdaptiveRange | tuple[float, float],
    orientation: str | None = "vertical",
    size_px: Iterable[int] | None = None,
    *,
    title: str = "",
    precision: int = 1,
    tick_count: int = 5,
) -> bytes:
    resolved_orientation = _normalize_orientation(orientation)
    resolved_domain = _as_domain(domain)
    spec = LegendSpec(
        orientation=resolved_orientation,
        size_px=_normalize_size(resolved_orientation, size_px),
        title=title,
        tick_values=tuple(generate_ticks(resolved_domain.min, resolved_domain.max, tick_count)),
        color_scheme=scheme,
        domain=resolved_domain,
        precision=precision,
    )
    return render_legend(spec)
