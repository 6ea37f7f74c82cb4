from __future__ import annotations

from typing import Any

# bbox is [min_lon, min_lat, max_lon, max_lat] in WGS84.
# "layers" maps variable ids onto provider layer names for that deployment.
REGION_PRESETS: dict[str, dict[str, Any]] = {
    "cook_islands": {
        "label": "Cook Islands",
        "bbox": [-166.0, -22.5, -157.0, -8.5],
        "utc_offset_hours": -10.0,
        "layers": {
            "hs": "cook_forecast/hs",
            "tm02": "cook_forecast/tm02",
            "tpeak": "cook_forecast/tpeak",
            "dirm": "cook_forecast/dirm",
            "inundation": "raro_inun/Band1",
        },
        "tuning": {},
    },
    "niue": {
        "label": "Niue",
        "bbox": [-169.95, -19.2, -169.6, -18.8],
        "utc_offset_hours": -11.0,
        "layers": {
            "hs": "niue_forecast/hs",
            "tm02": "niue_forecast/tm02",
            "tpeak": "niue_forecast/tpeak",
            "dirm": "niue_forecast/dirm",
        },
        # Niue sits in open ocean with a longer-period swell climate.
        "tuning": {"cv_uniform": 0.15},
    },
    "tuvalu": {
        "label": "Tuvalu",
        "bbox": [176.0, -10.8, 180.0, -5.6],
        "utc_offset_hours": 12.0,
        "layers": {
            "hs": "tuvalu_forecast/hs",
            "tm02": "tuvalu_forecast/tm02",
            "tpeak": "tuvalu_forecast/tpeak",
            "dirm": "tuvalu_forecast/dirm",
        },
        "tuning": {},
    },
}

DEFAULT_REGION = "cook_islands"


def region_preset(region_id: str) -> dict[str, Any]:
    key = str(region_id or "").strip().lower()
    preset = REGION_PRESETS.get(key)
    if preset is None:
        raise KeyError(f"Unknown region: {region_id!r}")
    return preset


def region_bbox(region_id: str) -> tuple[float, float, float, float]:
    min_lon, min_lat, max_lon, max_lat = region_preset(region_id)["bbox"]
    return float(min_lon), float(min_lat), float(max_lon), float(max_lat)
