"""
buffersearch CLI entrypoint.

This CLI is intended for quick local demos and debugging without a map UI. `query` runs a
headless activate -> draw -> query -> render cycle through `BufferSearchSession`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from buffersearch.config.settings import get_settings
from buffersearch.core.errors import InvalidParameterError
from buffersearch.core.geo import generate_buffer, Point
from buffersearch.core.logging import configure_logging
from buffersearch.domain.models import ActivationConfig, LayerRef
from buffersearch.query.outcome import Failure
from buffersearch.session import BufferSearchSession


def _cmd_buffer(args: argparse.Namespace) -> int:
    """Handle the `buffer` subcommand."""
    settings = get_settings()
    unit = args.unit or settings.buffer.default_unit
    distance = args.distance if args.distance is not None else settings.buffer.default_distance
    try:
        area = generate_buffer(
            Point(x=float(args.x), y=float(args.y), crs=args.crs),
            distance,
            unit,
            segments=int(args.segments or settings.buffer.segments),
        )
    except InvalidParameterError as e:
        print(f"error: {e.message}")
        return 2
    print(json.dumps(area.to_geojson(), indent=2))
    return 0


def _cmd_query(args: argparse.Namespace) -> int:
    """Handle the `query` subcommand."""
    settings = get_settings()
    layer = None
    if args.layer:
        layer = LayerRef(
            id=args.layer,
            geometry_field=args.geometry_field or settings.layer.geometry_field,
            crs=settings.layer.crs,
        )
    config = ActivationConfig.from_settings(
        settings,
        layer=layer,
        distance=args.distance,
        unit=args.unit,
        map_crs=args.crs,
    )
    session = BufferSearchSession(settings, config=config)
    model = asyncio.run(session.run_point_query(Point(x=float(args.x), y=float(args.y))))

    if args.json:
        print(json.dumps(model.as_dict(), ensure_ascii=False, indent=2, default=str))
    elif model.error_message:
        print(f"error [{model.error_code}]: {model.error_message}")
    elif not model.total:
        print(f"No features within {config.distance:g} {config.unit}.")
    else:
        print(f"{model.total} feature(s) within {config.distance:g} {config.unit}:")
        for row in model.rows:
            label = row.values.get("name", "")
            print(f"{row.row_id:>8}  ({row.coordinates})  {label}")
        if model.page_count > 1:
            print(f"(page 1/{model.page_count})")

    outcome = session.last_outcome
    if isinstance(outcome, Failure):
        return 2 if isinstance(outcome.reason, InvalidParameterError) else 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the buffersearch CLI."""
    parser = argparse.ArgumentParser(prog="buffersearch")
    sub = parser.add_subparsers(dest="command", required=True)

    buf = sub.add_parser("buffer", help="Print the geodesic buffer polygon around a point as GeoJSON.")
    buf.add_argument("--x", required=True, type=float, help="Longitude or easting")
    buf.add_argument("--y", required=True, type=float, help="Latitude or northing")
    buf.add_argument("--crs", type=str, default=None, help="Point CRS (default EPSG:4326)")
    buf.add_argument("--distance", type=float, default=None)
    buf.add_argument("--unit", choices=["meters", "kilometers"], default=None)
    buf.add_argument("--segments", type=int, default=None)
    buf.set_defaults(func=_cmd_buffer)

    q = sub.add_parser("query", help="Query the backend for features within a buffer around a point.")
    q.add_argument("--x", required=True, type=float, help="Longitude or easting")
    q.add_argument("--y", required=True, type=float, help="Latitude or northing")
    q.add_argument("--crs", type=str, default=None, help="Map CRS of the point (default from config)")
    q.add_argument("--distance", type=float, default=None)
    q.add_argument("--unit", choices=["meters", "kilometers"], default=None)
    q.add_argument("--layer", type=str, default=None, help="Layer id (default from config)")
    q.add_argument("--geometry-field", dest="geometry_field", type=str, default=None)
    q.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    q.set_defaults(func=_cmd_query)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m buffersearch.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
