"""
API routes.

Endpoints:
- POST `/api/buffer`: geodesic buffer polygon around a point (no backend call).
- POST `/api/buffer-query`: headless draw -> buffer -> query -> render cycle.
- GET  `/api/settings`: public settings for map frontends (API key redacted).
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from buffersearch.config.overrides import apply_settings_overrides
from buffersearch.config.settings import Settings, get_settings
from buffersearch.core.errors import InvalidParameterError
from buffersearch.core.geo import Point, generate_buffer
from buffersearch.domain.models import ActivationConfig, LayerRef, PointQuery
from buffersearch.interaction.controller import QueryBackend
from buffersearch.interaction.memory import RecordingNotifier
from buffersearch.query.client import SpatialQueryClient
from buffersearch.query.outcome import Empty, Failure, Success
from buffersearch.session import BufferSearchSession

router = APIRouter()


def _query_client(settings: Settings) -> QueryBackend:
    return SpatialQueryClient(settings)


def _resolve(query: PointQuery) -> tuple[Settings, ActivationConfig]:
    try:
        settings = apply_settings_overrides(get_settings(), query.settings_overrides)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e

    layer = None
    if query.layer_id:
        layer = LayerRef(
            id=query.layer_id,
            geometry_field=settings.layer.geometry_field,
            crs=settings.layer.crs,
        )
    config = ActivationConfig.from_settings(
        settings,
        layer=layer,
        distance=query.distance,
        unit=query.unit,
        map_crs=query.crs,
    )
    return settings, config


@router.post("/api/buffer")
def post_buffer(query: PointQuery) -> dict:
    """Return the buffer polygon (GeoJSON) that a query at this point would use."""
    _, config = _resolve(query)
    try:
        area = generate_buffer(
            Point(x=query.x, y=query.y, crs=config.map_crs),
            config.distance,
            config.unit,  # type: ignore[arg-type]
            segments=config.segments,
        )
    except InvalidParameterError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": e.message},
        ) from e
    return {"crs": area.crs, "distance_m": area.distance_m, "geometry": area.to_geojson()}


@router.post("/api/buffer-query")
async def post_buffer_query(query: PointQuery) -> dict:
    """Run one point through the full pipeline and return the rendered result rows."""
    settings, config = _resolve(query)
    notifier = RecordingNotifier()
    session = BufferSearchSession(
        settings,
        config=config,
        notifier=notifier,
        query_client=_query_client(settings),
    )
    model = await session.run_point_query(Point(x=query.x, y=query.y))
    outcome = session.last_outcome

    if isinstance(outcome, Failure):
        status = 400 if isinstance(outcome.reason, InvalidParameterError) else 502
        code = "VALIDATION_ERROR" if status == 400 else outcome.reason.code
        raise HTTPException(status_code=status, detail={"code": code, "message": outcome.reason.message})

    kind = "success" if isinstance(outcome, Success) else "empty" if isinstance(outcome, Empty) else "none"
    return {
        "outcome": kind,
        "layer": config.layer.id,
        "distance": config.distance,
        "unit": config.unit,
        "results": model.as_dict(),
        "notifications": [{"message": m, "severity": s} for m, s in notifier.messages],
    }


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return safe-to-expose settings for UI defaults (API key removed)."""
    data = get_settings().model_dump(mode="json")
    return {
        "layer": data.get("layer", {}),
        "buffer": data.get("buffer", {}),
        "map": data.get("map", {}),
        "presenter": data.get("presenter", {}),
        "host": data.get("host", {}),
    }
