"""Time-of-day, season and forecast-horizon context for a valid time."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ..models.base import TemporalContext

# (label, first local hour, end hour exclusive); anything else is night.
TIME_OF_DAY_BUCKETS: tuple[tuple[str, int, int], ...] = (
    ("morning", 6, 12),
    ("afternoon", 12, 18),
    ("evening", 18, 22),
)
NIGHT = "night"

# Meteorological seasons by month for the southern hemisphere; northern is shifted by six months.
SOUTHERN_SEASONS: dict[int, str] = {
    3: "autumn", 4: "autumn", 5: "autumn",
    6: "winter", 7: "winter", 8: "winter",
    9: "spring", 10: "spring", 11: "spring",
    12: "summer", 1: "summer", 2: "summer",
}
_OPPOSITE_SEASON = {"autumn": "spring", "spring": "autumn", "winter": "summer", "summer": "winter"}

# (label, maximum lead hours inclusive)
FORECAST_HORIZONS: tuple[tuple[str, float], ...] = (
    ("nowcast", 6.0),
    ("short_term", 24.0),
    ("medium_term", 72.0),
)
LONG_TERM = "long_term"


def time_of_day(hour: int) -> str:
    for label, start, end in TIME_OF_DAY_BUCKETS:
        if start <= hour < end:
            return label
    return NIGHT


def season(month: int, *, southern: bool = True) -> str:
    label = SOUTHERN_SEASONS[month]
    return label if southern else _OPPOSITE_SEASON[label]


def forecast_horizon(lead_hours: float) -> str:
    for label, limit in FORECAST_HORIZONS:
        if lead_hours <= limit:
            return label
    return LONG_TERM


def analyze_time(
    timestamp: datetime,
    now: datetime,
    *,
    utc_offset_hours: float | None = None,
    latitude: float | None = None,
) -> TemporalContext:
    """Context for `timestamp` as seen at `now`.

    Hours and months are local to the deployment when an offset is given. Times in
    the past count as nowcasts. A missing latitude is taken as southern hemisphere.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = timestamp
    if utc_offset_hours is not None:
        local = timestamp.astimezone(timezone(timedelta(hours=utc_offset_hours)))
    lead_hours = (timestamp - now).total_seconds() / 3600.0
    return TemporalContext(
        local_hour=local.hour,
        time_of_day=time_of_day(local.hour),
        season=season(local.month, southern=latitude is None or latitude < 0),
        forecast_horizon=forecast_horizon(lead_hours),
        lead_hours=round(lead_hours, 1),
    )
