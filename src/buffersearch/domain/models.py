"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- configuration inputs fixed for one activation (`LayerRef`, `ActivationConfig`)
- the search request derived from a drawn point (`BufferRequest`)
- backend features as owned by the feature store (`Feature`)

The drawn `Point` and the derived `BufferGeometry` live in `buffersearch.core.geo`
because they are plain immutable values produced by pure functions.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from buffersearch.config.settings import Settings
from buffersearch.core.geo import BufferGeometry, Point, generate_buffer


class LayerRef(BaseModel):
    """Backend data source to query; immutable for the lifetime of a query."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    geometry_field: str = Field(..., min_length=1)
    crs: str = "EPSG:4326"


class Feature(BaseModel):
    """A single geometry (GeoJSON mapping) plus its attribute properties."""

    model_config = ConfigDict(frozen=True)

    geometry: dict[str, Any] | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class BufferRequest(BaseModel):
    """Origin + distance + unit; fully determines the search geometry.

    Validation of distance/unit happens in `to_geometry()` so that bad values surface as
    `InvalidParameterError` rather than a Pydantic validation error.
    """

    model_config = ConfigDict(frozen=True)

    origin: Point
    distance: float
    unit: str = "meters"

    def to_geometry(self, *, segments: int) -> BufferGeometry:
        return generate_buffer(self.origin, self.distance, self.unit, segments=segments)  # type: ignore[arg-type]


class ActivationConfig(BaseModel):
    """Inputs supplied once at activation and treated as immutable for that cycle."""

    model_config = ConfigDict(frozen=True)

    layer: LayerRef
    distance: float
    unit: str = "meters"
    map_crs: str = "EPSG:4326"
    segments: int = 64

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "ActivationConfig":
        data: dict[str, Any] = {
            "layer": LayerRef(
                id=settings.layer.id,
                geometry_field=settings.layer.geometry_field,
                crs=settings.layer.crs,
            ),
            "distance": settings.buffer.default_distance,
            "unit": settings.buffer.default_unit,
            "map_crs": settings.map.crs,
            "segments": settings.buffer.segments,
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(data)


class PointQuery(BaseModel):
    """API request payload: a drawn point plus optional per-request knobs."""

    x: float
    y: float
    crs: str | None = None
    distance: float | None = None
    unit: str | None = None
    layer_id: str | None = None
    settings_overrides: dict[str, Any] | None = None
