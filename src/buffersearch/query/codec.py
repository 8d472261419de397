"""
Backend wire codec.

Request (one entry per data source):

    [{"dataSource": {"id": ...},
      "filter": {"conditionList": [{"spatialCondition": {"key": <geometry field>,
                                                         "geometry": "<GeoJSON string>",
                                                         "spatialRelation": "INTERSECT"}}],
                 "logicalOperation": "AND"},
      "crs": ...}]

The buffer ring is reprojected into the layer CRS before encoding, so the declared `crs`
always matches the coordinates.

Response: a JSON array (optionally wrapped as `{"data": [...]}`) of entries whose
`featureCollection` field holds a serialized GeoJSON FeatureCollection. That string is
decoded in a second step; every feature geometry is validated with shapely. An entry
without `featureCollection` (e.g. a backend error envelope) is a `ParseError`, never an
empty result.
"""

from __future__ import annotations

import json
from typing import Any

from shapely.geometry import shape

from buffersearch.core.errors import ParseError
from buffersearch.core.geo import BufferGeometry
from buffersearch.domain.models import Feature, LayerRef

INTERSECT = "INTERSECT"


def build_query(layer: LayerRef, area: BufferGeometry) -> dict[str, Any]:
    """Intersection query in its logical form (before wire serialization).

    Raises:
        InvalidParameterError: the layer CRS is unknown.
    """
    area = area.to_crs(layer.crs)
    return {
        "dataSource": layer.id,
        "filter": {
            "spatialCondition": {
                "field": layer.geometry_field,
                "geometry": area.to_geojson(),
                "relation": INTERSECT,
            }
        },
        "crs": layer.crs,
    }


def encode_request(query: dict[str, Any]) -> list[dict[str, Any]]:
    """Serialize a logical query into the backend request body."""
    condition = query["filter"]["spatialCondition"]
    return [
        {
            "dataSource": {"id": query["dataSource"]},
            "filter": {
                "conditionList": [
                    {
                        "spatialCondition": {
                            "key": condition["field"],
                            "geometry": json.dumps(condition["geometry"], separators=(",", ":")),
                            "spatialRelation": condition["relation"],
                        }
                    }
                ],
                "logicalOperation": "AND",
            },
            "crs": query["crs"],
        }
    ]


def _entries(payload: Any) -> list[Any]:
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if isinstance(payload, dict):
        if "featureCollection" not in payload:
            raise ParseError(f"Response object has no featureCollection (keys: {sorted(payload)})")
        return [payload]
    if isinstance(payload, list):
        return payload
    raise ParseError(f"Unexpected response envelope of type {type(payload).__name__}")


def _decode_collection(raw: Any) -> list[Any]:
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ParseError(f"featureCollection is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ParseError("featureCollection must be a GeoJSON object")
    if raw.get("type") != "FeatureCollection":
        raise ParseError(f"Expected a FeatureCollection, got type={raw.get('type')!r}")
    features = raw.get("features")
    if not isinstance(features, list):
        raise ParseError("FeatureCollection.features must be a list")
    return features


def _decode_feature(raw: Any, index: int) -> Feature:
    if not isinstance(raw, dict):
        raise ParseError(f"Feature #{index} is not an object")
    geometry = raw.get("geometry")
    if geometry is not None:
        try:
            shape(geometry)
        except Exception as exc:
            raise ParseError(f"Feature #{index} has an invalid geometry: {exc}") from exc
    properties = raw.get("properties") or {}
    if not isinstance(properties, dict):
        raise ParseError(f"Feature #{index} properties must be an object")
    return Feature(geometry=geometry, properties=properties)


def decode_response(payload: Any) -> list[Feature]:
    """Decode a backend response into canonical features (raises `ParseError`)."""
    features: list[Feature] = []
    for entry in _entries(payload):
        if not isinstance(entry, dict):
            raise ParseError("Response entries must be objects")
        if "featureCollection" not in entry:
            raise ParseError(f"Response entry has no featureCollection (keys: {sorted(entry)})")
        for raw in _decode_collection(entry.get("featureCollection")):
            features.append(_decode_feature(raw, len(features)))
    return features
