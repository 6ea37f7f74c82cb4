from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path

from .config.regions import REGION_PRESETS
from .config.settings import Settings
from .services.errors import RenderCancelled, SettingsError
from .services.orchestrator import create_pipeline

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute an adaptive render spec for one marine variable.")
    parser.add_argument("--variable", required=True, help="Variable id (hs, tm02, tpeak, dirm, inundation)")
    parser.add_argument("--time", required=True, help="Valid time, ISO-8601 (e.g. 2026-03-01T00:00:00Z)")
    parser.add_argument("--bbox", default=None, help="min_lon,min_lat,max_lon,max_lat (default: region bbox)")
    parser.add_argument("--region", default=None, choices=sorted(REGION_PRESETS), help="Override MARINEVIZ_REGION")
    parser.add_argument("--provider", default="ncwms", help="Style provider (ncwms or plotter)")
    parser.add_argument("--orientation", default="vertical", choices=["horizontal", "vertical"])
    parser.add_argument("--legend-out", default=None, help="Write the legend PNG to this path")
    parser.add_argument("--include-legend", action="store_true", help="Keep base64 legend bytes in the JSON output")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parse_args(argv)

    try:
        settings = Settings.from_env()
    except SettingsError as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    if args.region:
        settings = replace(settings, region=args.region)

    pipeline = create_pipeline(settings, start_sweeper=False)
    try:
        spec = pipeline.build(
            args.variable,
            args.time,
            args.bbox,
            orientation=args.orientation,
            provider=args.provider,
        )
    except ValueError as exc:
        logger.error("Invalid request: %s", exc)
        return 2
    except RenderCancelled:
        logger.info("Render cancelled")
        return 130
    except KeyboardInterrupt:
        logger.info("Render interrupted")
        return 130
    finally:
        pipeline.close()

    if args.legend_out:
        out_path = Path(args.legend_out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(spec.legend_png)
        logger.info("Wrote legend %s (%d bytes)", out_path, len(spec.legend_png))

    payload = spec.to_dict()
    if not args.include_legend:
        payload.pop("legend_png_base64", None)
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
