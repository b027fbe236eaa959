"""Tests for the GeoJSON parser."""

import json

import pytest

from mapcore.errors import GeoJSONError, MapCoreError
from mapcore.geo.projection import to_projected
from mapcore.layers import Category
from mapcore.layers.geojson import parse_geojson

pytestmark = pytest.mark.unit

SQUARE = [[116.3, 39.8], [116.5, 39.8], [116.5, 40.0], [116.3, 40.0], [116.3, 39.8]]


def _collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


def _feature(geometry, properties=None, **extra):
    data = {"type": "Feature", "geometry": geometry, "properties": properties}
    data.update(extra)
    return data


class TestParseValid:

    def test_polygon_collection(self):
        """A FeatureCollection of polygons parses."""
        features = parse_geojson(_collection(
            _feature({"type": "Polygon", "coordinates": [SQUARE]}, {"name": "a"}),
            _feature({"type": "Polygon", "coordinates": [SQUARE]}, {"name": "b"}),
        ))
        assert len(features) == 2
        assert [f.properties["name"] for f in features] == ["a", "b"]
        assert all(f.category == Category.GEOJSON for f in features)
        assert features[0].coordinates[0][0] == pytest.approx(to_projected((116.3, 39.8)))

    def test_string_input(self):
        """JSON text is accepted."""
        doc = json.dumps(_collection(_feature({"type": "Point", "coordinates": [116.4, 39.9]})))
        features = parse_geojson(doc)
        assert features[0].geometry_type == "Point"
        assert features[0].coordinates == pytest.approx(to_projected((116.4, 39.9)))

    def test_bytes_input(self):
        """JSON bytes are accepted."""
        doc = json.dumps({"type": "Point", "coordinates": [0, 0]}).encode()
        assert len(parse_geojson(doc)) == 1

    def test_single_feature(self):
        """A lone Feature parses to one feature."""
        features = parse_geojson(_feature({"type": "LineString", "coordinates": [[0, 0], [1, 1]]}))
        assert features[0].geometry_type == "LineString"
        assert len(features[0].coordinates) == 2

    def test_bare_geometry(self):
        """A bare geometry parses to one feature."""
        features = parse_geojson({"type": "Point", "coordinates": [10, 20]})
        assert features[0].properties == {}

    def test_multi_geometries(self):
        """Multi* geometries keep their type and parts."""
        features = parse_geojson(_collection(
            _feature({"type": "MultiPoint", "coordinates": [[0, 0], [1, 1]]}),
            _feature({"type": "MultiLineString", "coordinates": [[[0, 0], [1, 1]], [[2, 2], [3, 3]]]}),
            _feature({"type": "MultiPolygon", "coordinates": [[SQUARE], [SQUARE]]}),
        ))
        assert [f.geometry_type for f in features] == ["MultiPoint", "MultiLineString", "MultiPolygon"]
        assert len(features[2].coordinates) == 2

    def test_feature_id_is_kept(self):
        """A GeoJSON id becomes the feature id."""
        features = parse_geojson(_collection(
            _feature({"type": "Point", "coordinates": [0, 0]}, id=42),
        ))
        assert features[0].feature_id == "42"

    def test_generated_ids_are_unique(self):
        """Missing ids are generated uniquely."""
        point = {"type": "Point", "coordinates": [0, 0]}
        features = parse_geojson(_collection(_feature(point), _feature(point)))
        assert features[0].feature_id != features[1].feature_id

    def test_empty_collection(self):
        """An empty collection yields no features."""
        assert parse_geojson(_collection()) == []

    def test_custom_category(self):
        """Features can be placed in another category."""
        features = parse_geojson({"type": "Point", "coordinates": [0, 0]}, category=Category.POINTS)
        assert features[0].category == Category.POINTS


class TestParseInvalid:

    @pytest.mark.parametrize("doc", [
        "{not json",
        b"\xff\xfe",
        "[1, 2, 3]",
        {"type": "Topology"},
        {"type": "FeatureCollection", "features": {}},
        _collection({"type": "Point", "coordinates": [0, 0]}),
        _collection(_feature(None)),
        _collection(_feature({"type": "Circle", "coordinates": [0, 0]})),
        _collection(_feature({"type": "Point", "coordinates": [0, 0]}, properties=[1])),
        {"type": "Point", "coordinates": [200, 0]},
        {"type": "Point", "coordinates": [0]},
        {"type": "Point", "coordinates": ["a", "b"]},
        {"type": "Point", "coordinates": [True, 0]},
        {"type": "LineString", "coordinates": [[0, 0]]},
        {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [0, 0]]]},
        {"type": "Polygon", "coordinates": [[0, 0], [1, 0], [1, 1], [0, 0]]},
    ])
    def test_raises(self, doc):
        """Malformed documents raise GeoJSONError."""
        with pytest.raises(GeoJSONError):
            parse_geojson(doc)

    def test_one_bad_feature_rejects_all(self):
        """One bad feature rejects the whole document."""
        doc = _collection(
            _feature({"type": "Point", "coordinates": [0, 0]}),
            _feature({"type": "Point", "coordinates": [0, 100]}),
        )
        with pytest.raises(GeoJSONError, match=r"features\[1\]"):
            parse_geojson(doc)

    def test_error_hierarchy(self):
        """GeoJSONError is a MapCoreError and a ValueError."""
        assert issubclass(GeoJSONError, MapCoreError)
        assert issubclass(GeoJSONError, ValueError)
