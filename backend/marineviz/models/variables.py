from __future__ import annotations

from .base import VariableSpec

# WMO-style significant wave height thresholds (m); range maxima snap up to these.
WAVE_HEIGHT_LADDER: tuple[float, ...] = (0.1, 0.5, 1.0, 1.5, 2.5, 4.0, 6.0, 9.0, 12.0, 16.0, 20.0, 30.0)
INUNDATION_LADDER: tuple[float, ...] = (0.1, 0.25, 0.5, 1.0, 1.5, 2.0, 3.0, 5.0)

MARINE_VARIABLES: dict[str, VariableSpec] = {
    "hs": VariableSpec(
        id="hs",
        name="Significant Wave Height",
        kind="magnitude",
        units="m",
        default_palette="viridis",
        alternate_palette="plasma",
        default_range=(0.0, 4.0),
        plausible_range=(0.0, 20.0),
        precision=1,
        ceiling_ladder=WAVE_HEIGHT_LADDER,
        sea_state_scale="height",
        storm_warning=True,
        legend_title="Wave Height (m)",
        order=0,
    ),
    "tm02": VariableSpec(
        id="tm02",
        name="Mean Wave Period",
        kind="magnitude",
        units="s",
        default_palette="ylgnbu",
        alternate_palette="plasma",
        default_range=(0.0, 20.0),
        plausible_range=(0.0, 30.0),
        precision=1,
        sea_state_scale="period",
        legend_title="Mean Period (s)",
        order=1,
    ),
    "tpeak": VariableSpec(
        id="tpeak",
        name="Peak Wave Period",
        kind="magnitude",
        units="s",
        default_palette="magma",
        alternate_palette="spectral",
        # climatological peak periods around the Cook Islands
        default_range=(9.0, 14.0),
        plausible_range=(0.0, 30.0),
        precision=1,
        sea_state_scale="period",
        legend_title="Peak Period (s)",
        order=2,
    ),
    "dirm": VariableSpec(
        id="dirm",
        name="Mean Wave Direction",
        kind="angular",
        units="deg",
        default_palette="compass",
        alternate_palette="compass",
        default_range=(0.0, 360.0),
        plausible_range=(0.0, 360.0),
        precision=0,
        sea_state_scale=None,
        legend_title="Wave Direction (deg)",
        order=3,
    ),
    "inundation": VariableSpec(
        id="inundation",
        name="Inundation Depth",
        kind="depth",
        units="m",
        default_palette="blues",
        alternate_palette="plasma",
        default_range=(0.0, 2.0),
        plausible_range=(0.0, 10.0),
        precision=2,
        ceiling_ladder=INUNDATION_LADDER,
        sea_state_scale="height",
        storm_warning=True,
        legend_title="Inundation Depth (m)",
        order=4,
    ),
}


def generic_variable(var_id: str) -> VariableSpec:
    return VariableSpec(
        id=var_id,
        name=var_id or "unknown",
        kind="magnitude",
        default_palette="viridis",
        alternate_palette="plasma",
        default_range=(0.0, 1.0),
        plausible_range=(float("-inf"), float("inf")),
        precision=2,
        sea_state_scale=None,
        generic=True,
    )
