"""Marine visualization API: adaptive render specs and legend images."""

from __future__ import annotations

import hashlib
import json
import logging
import threading

from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config.regions import REGION_PRESETS
from .models.registry import get_variable, list_variables
from .services.errors import RenderCancelled, SettingsError, UnsupportedVariable
from .services.orchestrator import RenderPipeline, create_pipeline

logger = logging.getLogger(__name__)

RENDER_SPEC_CACHE_CONTROL = "public, max-age=300"
LEGEND_CACHE_CONTROL = "public, max-age=1800"
CATALOG_CACHE_CONTROL = "public, max-age=3600"

_PIPELINE: RenderPipeline | None = None
_pipeline_lock = threading.Lock()


def get_pipeline() -> RenderPipeline:
    global _PIPELINE
    with _pipeline_lock:
        if _PIPELINE is None:
            _PIPELINE = create_pipeline()
        return _PIPELINE


def _if_none_match_values(header_value: str) -> list[str]:
    return [v.strip() for v in header_value.split(",") if v.strip()]


def _etag_matches(if_none_match: str | None, etag: str) -> bool:
    if not if_none_match:
        return False
    vals = _if_none_match_values(if_none_match)
    return "*" in vals or etag in vals


def _make_etag(payload: object) -> str:
    digest = hashlib.md5(json.dumps(payload, sort_keys=True, default=str).encode()).hexdigest()[:12]
    return f'"{digest}"'


def _maybe_304(request: Request, *, etag: str, cache_control: str) -> Response | None:
    if _etag_matches(request.headers.get("if-none-match"), etag):
        return Response(
            status_code=304,
            headers={
                "ETag": etag,
                "Cache-Control": cache_control,
            },
        )
    return None


app = FastAPI(title="Marine Visualization API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _build_spec(
    variable: str,
    time: str,
    bbox: str | None,
    orientation: str,
    provider: str,
    width: int | None,
    height: int | None,
):
    size_px = (width, height) if width is not None and height is not None else None
    try:
        return get_pipeline().build(
            variable,
            time,
            bbox,
            orientation=orientation,
            size_px=size_px,
            provider=provider,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RenderCancelled as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except SettingsError as exc:
        logger.error("Configuration error: %s", exc)
        raise HTTPException(status_code=500, detail="server misconfigured") from exc


@app.get("/api/v1/health")
def health():
    pipeline = _PIPELINE
    return {
        "ok": True,
        "pipeline_ready": pipeline is not None,
        "caches": pipeline.cache.stats() if pipeline is not None else [],
    }


@app.get("/api/v1/regions")
def regions():
    return {
        region_id: {"label": preset["label"], "bbox": preset["bbox"], "variables": sorted(preset["layers"])}
        for region_id, preset in REGION_PRESETS.items()
    }


@app.get("/api/v1/variables")
def variables(request: Request):
    payload = [spec.to_dict() for spec in list_variables()]
    etag = _make_etag(payload)
    not_modified = _maybe_304(request, etag=etag, cache_control=CATALOG_CACHE_CONTROL)
    if not_modified is not None:
        return not_modified
    return JSONResponse(content=payload, headers={"ETag": etag, "Cache-Control": CATALOG_CACHE_CONTROL})


@app.get("/api/v1/variables/{variable}")
def variable_detail(variable: str):
    try:
        return get_variable(variable, strict=True).to_dict()
    except UnsupportedVariable as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/api/v1/{variable}/render-spec")
def render_spec(
    request: Request,
    variable: str,
    time: str = Query(..., description="ISO-8601 valid time"),
    bbox: str | None = Query(None, description="min_lon,min_lat,max_lon,max_lat (defaults to region)"),
    orientation: str = Query("vertical", pattern="^(horizontal|vertical)$"),
    provider: str = Query("ncwms"),
    width: int | None = Query(None, ge=16, le=2048),
    height: int | None = Query(None, ge=16, le=2048),
):
    spec = _build_spec(variable, time, bbox, orientation, provider, width, height)
    payload = spec.to_dict()
    etag = _make_etag(payload)
    not_modified = _maybe_304(request, etag=etag, cache_control=RENDER_SPEC_CACHE_CONTROL)
    if not_modified is not None:
        return not_modified
    return JSONResponse(content=payload, headers={"ETag": etag, "Cache-Control": RENDER_SPEC_CACHE_CONTROL})


@app.get("/api/v1/{variable}/legend.png")
def legend_png(
    request: Request,
    variable: str,
    time: str = Query(..., description="ISO-8601 valid time"),
    bbox: str | None = Query(None),
    orientation: str = Query("vertical", pattern="^(horizontal|vertical)$"),
    provider: str = Query("ncwms"),
    width: int | None = Query(None, ge=16, le=2048),
    height: int | None = Query(None, ge=16, le=2048),
):
    spec = _build_spec(variable, time, bbox, orientation, provider, width, height)
    etag = f'"{hashlib.md5(spec.legend_png).hexdigest()[:12]}"'
    not_modified = _maybe_304(request, etag=etag, cache_control=LEGEND_CACHE_CONTROL)
    if not_modified is not None:
        return not_modified
    return Response(
        content=spec.legend_png,
        media_type="image/png",
        headers={"ETag": etag, "Cache-Control": LEGEND_CACHE_CONTROL},
    )

