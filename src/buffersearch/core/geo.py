from __future__ import annotations
import math
from dataclasses import dataclass
from functools import lru_cache
from math import asin, cos, radians, sin, sqrt
from typing import Any, Literal

from pyproj import CRS, Geod, Transformer
from pyproj.exceptions import CRSError
from shapely.geometry import Polygon

from buffersearch.core.errors import InvalidParameterError

"""
Geodesic buffer generation.

A buffer is the polygon enclosing every point within `distance` of an origin. We solve
the forward geodesic problem on the WGS84 ellipsoid for evenly spaced azimuths, so the
zone keeps its true ground radius at any latitude (a planar circle in degrees would be
squashed towards the poles).

Origins in a projected CRS are transformed to WGS84, buffered, and transformed back so
the resulting ring is expressed in the origin's CRS.
"""

Unit = Literal["meters", "kilometers"]

WGS84 = "EPSG:4326"
DEFAULT_SEGMENTS = 64
MIN_SEGMENTS = 8

_UNIT_TO_METERS: dict[str, float] = {"meters": 1.0, "kilometers": 1000.0}
_GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class Point:
    """A drawn coordinate pair; `crs` defaults to WGS84 lon/lat when omitted."""

    x: float
    y: float
    crs: str | None = None

    @property
    def effective_crs(self) -> str:
        return self.crs or WGS84


@dataclass(frozen=True)
class BufferGeometry:
    """A closed polygon ring around `origin`, expressed in `crs`."""

    origin: Point
    distance_m: float
    crs: str
    ring: tuple[tuple[float, float], ...]

    @property
    def polygon(self) -> Polygon:
        return Polygon(self.ring)

    def to_geojson(self) -> dict[str, Any]:
        return {"type": "Polygon", "coordinates": [[list(xy) for xy in self.ring]]}

    def to_crs(self, crs: str) -> BufferGeometry:
        """Return this ring reprojected into `crs` (same origin and distance)."""
        if crs == self.crs:
            return self
        try:
            _validate_crs(crs)
        except CRSError as exc:
            raise InvalidParameterError(f"Unknown CRS '{crs}'") from exc
        xs, ys = _transformer(self.crs, crs).transform(
            [x for x, _ in self.ring], [y for _, y in self.ring]
        )
        ring = tuple((float(x), float(y)) for x, y in zip(xs, ys))
        return BufferGeometry(origin=self.origin, distance_m=self.distance_m, crs=crs, ring=ring)


def to_meters(distance: float, unit: str) -> float:
    """Validate `distance`/`unit` and return the distance in meters."""
    if unit not in _UNIT_TO_METERS:
        raise InvalidParameterError(
            f"Unsupported unit '{unit}'; expected one of {sorted(_UNIT_TO_METERS)}"
        )
    try:
        value = float(distance)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"Buffer distance must be a number, got {distance!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise InvalidParameterError(f"Buffer distance must be a finite number > 0, got {distance!r}")
    return value * _UNIT_TO_METERS[unit]


@lru_cache(maxsize=32)
def _validate_crs(crs: str) -> CRS:
    return CRS.from_user_input(crs)


@lru_cache(maxsize=32)
def _transformer(src: str, dst: str) -> Transformer:
    return Transformer.from_crs(src, dst, always_xy=True)


def generate_buffer(
    origin: Point,
    distance: float,
    unit: Unit = "meters",
    *,
    segments: int = DEFAULT_SEGMENTS,
) -> BufferGeometry:
    """Return the geodesic buffer polygon of `distance` `unit` around `origin`.

    Raises:
        InvalidParameterError: distance is not finite or <= 0, unit is unsupported,
            segments is below `MIN_SEGMENTS`, or the origin CRS is unknown.
    """
    distance_m = to_meters(distance, unit)
    if int(segments) < MIN_SEGMENTS:
        raise InvalidParameterError(f"segments must be >= {MIN_SEGMENTS}, got {segments}")
    segments = int(segments)

    crs = origin.effective_crs
    try:
        _validate_crs(crs)
    except CRSError as exc:
        raise InvalidParameterError(f"Unknown CRS '{crs}'") from exc

    native = crs == WGS84
    if native:
        lon, lat = float(origin.x), float(origin.y)
    else:
        lon, lat = _transformer(crs, WGS84).transform(float(origin.x), float(origin.y))

    if not (-90.0 <= lat <= 90.0):
        raise InvalidParameterError(f"Origin latitude out of range: {lat}")

    # Clockwise from north; the last vertex closes the ring.
    azimuths = [360.0 * i / segments for i in range(segments)]
    lons, lats, _ = _GEOD.fwd([lon] * segments, [lat] * segments, azimuths, [distance_m] * segments)

    if native:
        xs, ys = lons, lats
    else:
        xs, ys = _transformer(WGS84, crs).transform(lons, lats)

    ring = [(float(x), float(y)) for x, y in zip(xs, ys)]
    ring.append(ring[0])
    return BufferGeometry(origin=origin, distance_m=distance_m, crs=crs, ring=tuple(ring))


def haversine_m(a: Point, b: Point) -> float:
    """Compute great-circle distance in meters between two WGS84 points."""
    r = 6_371_000
    lat1 = radians(a.y)
    lon1 = radians(a.x)
    lat2 = radians(b.y)
    lon2 = radians(b.x)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * r * asin(sqrt(h))
