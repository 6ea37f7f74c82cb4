"""Palette anchors and color-space helpers.

Palettes are stored as evenly spaced hex anchors and interpolated linearly in RGB.
The anchors for the perceptually uniform ramps are the matplotlib/ColorBrewer
reference colors sampled at equal steps.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from ..models.base import AdaptiveRange

PALETTES: dict[str, tuple[str, ...]] = {
    "viridis": (
        "#440154", "#482878", "#3e4989", "#31688e", "#26828e",
        "#1f9e89", "#35b779", "#6ece58", "#b5de2b", "#fde725",
    ),
    "plasma": (
        "#0d0887", "#46039f", "#7201a8", "#9c179e", "#bd3786",
        "#d8576b", "#ed7953", "#fb9f3a", "#fdca26", "#f0f921",
    ),
    "inferno": (
        "#000004", "#1b0c41", "#4a0c6b", "#781c6d", "#a52c60",
        "#cf4446", "#ed6925", "#fb9b06", "#f7d13d", "#fcffa4",
    ),
    "magma": (
        "#000004", "#180f3d", "#440f76", "#721f81", "#9e2f7f",
        "#cd4071", "#f1605d", "#fd9668", "#feca8d", "#fcfdbf",
    ),
    "ylgnbu": (
        "#ffffd9", "#edf8b1", "#c7e9b4", "#7fcdbb", "#41b6c4",
        "#1d91c0", "#225ea8", "#253494", "#081d58",
    ),
    "blues": (
        "#f7fbff", "#deebf7", "#c6dbef", "#9ecae1", "#6baed6",
        "#4292c6", "#2171b5", "#08519c", "#08306b",
    ),
    "spectral": (
        "#9e0142", "#d53e4f", "#f46d43", "#fdae61", "#fee08b", "#ffffbf",
        "#e6f598", "#abdda4", "#66c2a5", "#3288bd", "#5e4fa2",
    ),
    # Circular hue wheel for directions: first and last anchors match so 0 == 360.
    "compass": (
        "#ff0000", "#ff8000", "#ffff00", "#80ff00", "#00ff00", "#00ff80", "#00ffff",
        "#0080ff", "#0000ff", "#8000ff", "#ff00ff", "#ff0080", "#ff0000",
    ),
}

CIRCULAR_PALETTES = frozenset({"compass"})
NICE_STEP_FACTORS = (1.0, 2.0, 5.0, 10.0)


def hex_to_rgb(hex_color: str) -> np.ndarray:
    hex_str = hex_color.strip().lstrip("#")
    if len(hex_str) != 6:
        raise ValueError(f"Expected #rrggbb color, got {hex_color!r}")
    return np.array(
        [
            int(hex_str[0:2], 16),
            int(hex_str[2:4], 16),
            int(hex_str[4:6], 16),
        ],
        dtype=np.float64,
    )


def rgb_to_hex(rgb: Sequence[float] | np.ndarray) -> str:
    r, g, b = np.clip(np.rint(np.asarray(rgb, dtype=np.float64)), 0, 255).astype(np.uint8).tolist()
    return f"#{r:02x}{g:02x}{b:02x}"


def lerp_rgb(a: str, b: str, t: float) -> str:
    t = min(1.0, max(0.0, float(t)))
    return rgb_to_hex(hex_to_rgb(a) * (1.0 - t) + hex_to_rgb(b) * t)


def palette_anchors(palette_id: str) -> tuple[str, ...]:
    anchors = PALETTES.get(palette_id)
    if anchors is None:
        raise KeyError(f"Unknown palette: {palette_id!r}")
    return anchors


def _anchor_array(colors_hex: Sequence[str]) -> np.ndarray:
    return np.stack([hex_to_rgb(color) for color in colors_hex], axis=0)


def interpolate_stops(
    positions: Sequence[float] | np.ndarray,
    stop_positions: Sequence[float] | np.ndarray,
    stop_colors: Sequence[str],
) -> np.ndarray:
    """Interpolate RGB at each position; returns a float array of shape (n, 3).

    Positions outside the stop span take the nearest end color.
    """
    if not stop_colors:
        raise ValueError("stop_colors must not be empty")
    targets = np.asarray(positions, dtype=np.float64)
    xs = np.asarray(stop_positions, dtype=np.float64)
    anchors = _anchor_array(stop_colors)
    r = np.interp(targets, xs, anchors[:, 0])
    g = np.interp(targets, xs, anchors[:, 1])
    b = np.interp(targets, xs, anchors[:, 2])
    return np.stack([r, g, b], axis=-1)


def sample_palette(palette_id: str, t: float) -> str:
    anchors = palette_anchors(palette_id)
    t = float(t)
    if not math.isfinite(t):
        t = 0.0
    if palette_id in CIRCULAR_PALETTES:
        t = t % 1.0
    t = min(1.0, max(0.0, t))
    if len(anchors) == 1:
        return anchors[0]
    positions = np.linspace(0.0, 1.0, num=len(anchors), dtype=np.float64)
    return rgb_to_hex(interpolate_stops([t], positions, anchors)[0])


def expand_ramp(colors_hex: Sequence[str], n: int) -> list[str]:
    if not colors_hex:
        raise ValueError("colors_hex must not be empty")
    if n <= 0:
        return []
    if len(colors_hex) == 1:
        return [colors_hex[0]] * n
    stop_positions = np.linspace(0.0, 1.0, num=len(colors_hex), dtype=np.float64)
    target_positions = np.linspace(0.0, 1.0, num=n, dtype=np.float64)
    return [rgb_to_hex(rgb) for rgb in interpolate_stops(target_positions, stop_positions, colors_hex)]


def nice_step(raw_step: float) -> float:
    """Round a positive step to the nearest 1/2/5/10 x 10^k (ties go to the smaller)."""
    if not math.isfinite(raw_step) or raw_step <= 0:
        raise ValueError(f"raw_step must be positive and finite, got {raw_step}")
    magnitude = 10.0 ** math.floor(math.log10(raw_step))
    normalized = raw_step / magnitude
    factor = min(NICE_STEP_FACTORS, key=lambda f: (abs(normalized - f), f))
    return factor * magnitude


def generate_ticks(min_value: float, max_value: float, count: int = 5) -> list[float]:
    domain = AdaptiveRange.padded(min_value, max_value)
    lo, hi = domain.min, domain.max
    count = max(2, int(count))
    step = nice_step((hi - lo) / (count - 1))
    # interior ticks closer than this to either end would overprint the end labels
    min_gap = step * 0.2

    ticks = [lo]
    k = math.ceil(lo / step)
    value = k * step
    while value < hi - min_gap:
        if value > lo + min_gap:
            ticks.append(round(value, 10))
        k += 1
        value = k * step
    ticks.append(hi)
    return ticks


def format_tick_label(value: float, precision: int = 1) -> str:
    if abs(value) >= 1000:
        return f"{value / 1000:.1f}k"
    text = f"{value:.{max(0, int(precision))}f}"
    if text.startswith("-") and float(text) == 0:
        text = text[1:]
    return text
