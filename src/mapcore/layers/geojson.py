"""Parse GeoJSON (RFC 7946) into projected Features.

Handles FeatureCollection, Feature, and bare geometry objects with
Point/LineString/Polygon and their Multi* variants.  Properties are passed
through.  Coordinates are [lng, lat] on input and EPSG:3857 on output.

Parsing is all-or-nothing: any malformed part raises GeoJSONError and no
features are returned, so callers can keep their store untouched.
"""

from __future__ import annotations

import json
import math

from mapcore.errors import GeoJSONError
from mapcore.geo.projection import is_valid_geographic, to_projected, transform_coordinates
from mapcore.layers.feature import Category, Feature, new_feature_id

# Nesting depth of the coordinate array per geometry type
_DEPTH = {
    "Point": 0,
    "MultiPoint": 1,
    "LineString": 1,
    "MultiLineString": 2,
    "Polygon": 2,
    "MultiPolygon": 3,
}

# Minimum positions per innermost array
_MIN_POSITIONS = {
    "MultiPoint": 0,
    "LineString": 2,
    "MultiLineString": 2,
    "Polygon": 4,
    "MultiPolygon": 4,
}


def parse_geojson(data, category: Category = Category.GEOJSON) -> list[Feature]:
    """Parse GeoJSON content into a list of Features.

    Args:
        data: GeoJSON as a str/bytes document or an already-decoded dict.
        category: Category stamped on the produced features.

    Returns:
        Features in document order, coordinates projected to EPSG:3857.

    Raises:
        GeoJSONError: On invalid JSON or any malformed object.
    """
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise GeoJSONError(f"Invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise GeoJSONError(f"GeoJSON root must be an object, got {type(data).__name__}")

    kind = data.get("type")
    if kind == "FeatureCollection":
        raw_features = data.get("features")
        if not isinstance(raw_features, list):
            raise GeoJSONError("FeatureCollection.features must be an array")
        return [_parse_feature(raw, idx, category) for idx, raw in enumerate(raw_features)]
    if kind == "Feature":
        return [_parse_feature(data, 0, category)]
    if kind in _DEPTH:
        return [_make_feature(data, {}, None, 0, category)]
    raise GeoJSONError(f"Unsupported GeoJSON type: {kind!r}")


def _parse_feature(raw, idx: int, category: Category) -> Feature:
    """Parse a single GeoJSON Feature dict."""
    if not isinstance(raw, dict) or raw.get("type") != "Feature":
        raise GeoJSONError(f"features[{idx}] is not a Feature object")

    geometry = raw.get("geometry")
    if not isinstance(geometry, dict):
        raise GeoJSONError(f"features[{idx}] has no geometry")

    properties = raw.get("properties")
    if properties is None:
        properties = {}
    if not isinstance(properties, dict):
        raise GeoJSONError(f"features[{idx}].properties must be an object")

    return _make_feature(geometry, properties, raw.get("id"), idx, category)


def _make_feature(geometry: dict, properties: dict, raw_id, idx: int,
                  category: Category) -> Feature:
    geom_type = geometry.get("type")
    if geom_type not in _DEPTH:
        raise GeoJSONError(f"features[{idx}]: unsupported geometry type {geom_type!r}")

    coordinates = geometry.get("coordinates")
    _check_coordinates(coordinates, _DEPTH[geom_type], geom_type, idx)

    if geom_type == "Point":
        projected = to_projected(coordinates)
    else:
        projected = transform_coordinates(coordinates, to_projected)

    feature_id = str(raw_id) if raw_id is not None else new_feature_id(f"geojson-{idx}")

    return Feature(
        feature_id=feature_id,
        geometry_type=geom_type,
        coordinates=projected,
        category=category,
        properties=dict(properties),
    )


def _check_coordinates(coords, depth: int, geom_type: str, idx: int) -> None:
    if depth == 0:
        if not _is_position(coords):
            raise GeoJSONError(f"features[{idx}]: invalid position {coords!r}")
        return

    if not isinstance(coords, list):
        raise GeoJSONError(f"features[{idx}]: {geom_type} coordinates must be an array")

    if depth == 1:
        minimum = _MIN_POSITIONS.get(geom_type, 0)
        if len(coords) < minimum:
            raise GeoJSONError(
                f"features[{idx}]: {geom_type} needs at least {minimum} positions"
            )
    for item in coords:
        _check_coordinates(item, depth - 1, geom_type, idx)


def _is_position(value) -> bool:
    if not isinstance(value, list) or len(value) < 2:
        return False
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
        return False
    if not all(math.isfinite(v) for v in value):
        return False
    return is_valid_geographic(value)
