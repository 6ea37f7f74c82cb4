"""Grid point sampling against a WMS GetFeatureInfo endpoint.

A failed or empty point resolves to None and is never retried; the caller only
needs one usable value. Cancellation stops new requests from being issued and
raises RenderCancelled so nothing partial reaches the cache.
"""

from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Protocol

import httpx
import numpy as np

from ..models.base import Bounds
from .errors import RenderCancelled

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_METADATA_KEYS = {"layer", "time", "lon", "lat", "longitude", "latitude", "x", "y", "crs"}
# half-width (deg) of the bbox drawn around a point for GetFeatureInfo
POINT_BBOX_HALF_WIDTH = 0.01
POINT_IMAGE_SIZE = 3


class PointSampler(Protocol):
    def sample_point(self, layer: str, time: str | None, lon: float, lat: float) -> float | None: ...


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RenderCancelled("render cancelled")


def parse_feature_info(body: str) -> float | None:
    """First number in a text/plain GetFeatureInfo body; "none"/"nan" bodies give None."""
    text = (body or "").strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"none", "nan", "null"} or "no data" in lowered:
        return None
    for line in text.splitlines():
        key, sep, rest = line.partition(":")
        if sep and key.strip().lower() in _METADATA_KEYS:
            continue
        candidate = rest if sep else line
        match = _NUMBER_RE.search(candidate)
        if match is None:
            continue
        value = float(match.group(0))
        if np.isfinite(value):
            return value
    return None


class WMSPointSampler:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds, follow_redirects=True)

    def feature_info_params(self, layer: str, time: str | None, lon: float, lat: float) -> dict[str, str]:
        half = POINT_BBOX_HALF_WIDTH
        centre = POINT_IMAGE_SIZE // 2
        params = {
            "SERVICE": "WMS",
            "VERSION": "1.3.0",
            "REQUEST": "GetFeatureInfo",
            "LAYERS": layer,
            "QUERY_LAYERS": layer,
            "CRS": "CRS:84",
            "BBOX": f"{lon - half},{lat - half},{lon + half},{lat + half}",
            "WIDTH": str(POINT_IMAGE_SIZE),
            "HEIGHT": str(POINT_IMAGE_SIZE),
            "I": str(centre),
            "J": str(centre),
            "INFO_FORMAT": "text/plain",
        }
        if time:
            params["TIME"] = time
        return params

    def sample_point(self, layer: str, time: str | None, lon: float, lat: float) -> float | None:
        try:
            response = self._client.get(self.base_url, params=self.feature_info_params(layer, time, lon, lat))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug("GetFeatureInfo failed for %s @ (%.4f, %.4f): %s", layer, lon, lat, exc)
            return None
        return parse_feature_info(response.text)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


def sample_grid(bounds: Bounds, grid_size: int = 10) -> list[tuple[float, float]]:
    """Regular grid of (lon, lat) points covering bounds, edges included."""
    min_lon, min_lat, max_lon, max_lat = bounds
    n = max(1, int(grid_size))
    if n == 1:
        return [((min_lon + max_lon) / 2.0, (min_lat + max_lat) / 2.0)]
    lons = np.linspace(min_lon, max_lon, num=n)
    lats = np.linspace(min_lat, max_lat, num=n)
    return [(float(lon), float(lat)) for lon in lons for lat in lats]


def _safe_sample(
    sampler: PointSampler,
    layer: str,
    time: str | None,
    lon: float,
    lat: float,
    cancel_token: CancelToken | None,
) -> float | None:
    if cancel_token is not None and cancel_token.cancelled:
        return None
    try:
        return sampler.sample_point(layer, time, lon, lat)
    except Exception:
        logger.exception("Point sampler raised for %s @ (%.4f, %.4f)", layer, lon, lat)
        return None


def fan_out(
    sampler: PointSampler,
    layer: str,
    time: str | None,
    bounds: Bounds,
    *,
    grid_size: int = 10,
    workers: int = 16,
    cancel_token: CancelToken | None = None,
) -> list[float | None]:
    points = sample_grid(bounds, grid_size)
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    results: list[float | None] = [None] * len(points)
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(points)))) as pool:
        futures: dict[Future[float | None], int] = {
            pool.submit(_safe_sample, sampler, layer, time, lon, lat, cancel_token): idx
            for idx, (lon, lat) in enumerate(points)
        }
        pending = set(futures)
        while pending:
            done, pending = wait(pending, timeout=0.05, return_when=FIRST_COMPLETED)
            for future in done:
                results[futures[future]] = future.result()
            if cancel_token is not None and cancel_token.cancelled:
                for future in pending:
                    future.cancel()
                logger.info("Sampling cancelled for %s with %d points outstanding", layer, len(pending))
                raise RenderCancelled(f"sampling cancelled for {layer}")

    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    valid = sum(1 for value in results if value is not None)
    logger.info("Sampled %s at %s: %d/%d points returned values", layer, time, valid, len(points))
    return results
