"""Tests for boundary payload ingestion (TopoJSON + GeoJSON)."""

from __future__ import annotations

import json

import pytest

from globepick.errors import DuplicateIdError, TopologyParseError
from globepick.models import MAX_FEATURE_ID, MultiPolygon, Polygon
from globepick.topology import decode_arcs, ingest, parse_payload


def _feature(rings, *, fid=None, name=None, kind="Polygon", **props):
    properties = dict(props)
    if name is not None:
        properties["name"] = name
    feature = {
        "type": "Feature",
        "properties": properties,
        "geometry": {"type": kind, "coordinates": rings},
    }
    if fid is not None:
        feature["id"] = fid
    return feature


def _collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


SQUARE = [[0, 0], [0, 10], [10, 10], [10, 0]]


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════

@pytest.fixture
def topology():
    """Two squares sharing the edge lon = 10, quantised and delta-encoded.

    Westland: lon 0..10, Eastland: lon 10..20, both lat 0..10.  Arc 1 is
    the shared edge; Eastland walks it backwards (``~1``).
    """
    return {
        "type": "Topology",
        "transform": {"scale": [0.5, 0.5], "translate": [-10, -10]},
        "arcs": [
            [[20, 20], [0, 20], [20, 0]],
            [[40, 40], [0, -20]],
            [[40, 40], [20, 0], [0, -20], [-20, 0]],
            [[40, 20], [-20, 0]],
        ],
        "objects": {
            "countries": {
                "type": "GeometryCollection",
                "geometries": [
                    {
                        "type": "Polygon",
                        "arcs": [[0, 1, 3]],
                        "id": "004",
                        "properties": {"name": "Westland"},
                    },
                    {
                        "type": "Polygon",
                        "arcs": [[2, ~1]],
                        "id": "008",
                        "properties": {"name": "Eastland", "iso_a3": "EST"},
                    },
                ],
            },
        },
    }


# ═══════════════════════════════════════════════════════════════════
# Payload decoding
# ═══════════════════════════════════════════════════════════════════

class TestParsePayload:
    def test_bytes_decoded(self):
        assert parse_payload(b'{"a": 1}') == {"a": 1}

    def test_text_decoded(self):
        assert parse_payload('[1, 2]') == [1, 2]

    def test_structures_pass_through(self):
        payload = {"type": "FeatureCollection", "features": []}
        assert parse_payload(payload) is payload

    def test_invalid_json_fails_fast(self):
        with pytest.raises(TopologyParseError, match="not valid JSON"):
            parse_payload(b"{not json")

    def test_invalid_utf8(self):
        with pytest.raises(TopologyParseError):
            parse_payload(b"\xff\xfe\x00")

    def test_unsupported_type(self):
        with pytest.raises(TopologyParseError):
            parse_payload(42)


# ═══════════════════════════════════════════════════════════════════
# TopoJSON
# ═══════════════════════════════════════════════════════════════════

class TestDecodeArcs:
    def test_delta_decoding(self, topology):
        arcs = decode_arcs(topology)
        assert arcs[0] == ((0.0, 0.0), (0.0, 10.0), (10.0, 10.0))
        assert arcs[1] == ((10.0, 10.0), (10.0, 0.0))
        assert arcs[2] == ((10.0, 10.0), (20.0, 10.0), (20.0, 0.0), (10.0, 0.0))

    def test_untransformed_arcs_are_absolute(self):
        arcs = decode_arcs({"type": "Topology", "arcs": [[[1.5, 2.5], [3.0, 4.0]]]})
        assert arcs == [((1.5, 2.5), (3.0, 4.0))]

    def test_bad_transform(self):
        with pytest.raises(TopologyParseError, match="transform"):
            decode_arcs({"arcs": [], "transform": {"scale": [1, 1]}})

    def test_non_numeric_arc_position(self):
        with pytest.raises(TopologyParseError):
            decode_arcs({"arcs": [[[0, "x"]]]})


class TestIngestTopology:
    def test_feature_count_and_order(self, topology):
        features = ingest(topology)
        assert [f.name for f in features] == ["Westland", "Eastland"]

    def test_digit_string_ids(self, topology):
        assert [f.id for f in ingest(topology)] == [4, 8]

    def test_rings_stitched(self, topology):
        west, east = ingest(topology)
        assert west.geometry.rings[0] == (
            (0.0, 0.0), (0.0, 10.0), (10.0, 10.0), (10.0, 0.0), (0.0, 0.0),
        )
        assert east.geometry.rings[0] == (
            (10.0, 10.0), (20.0, 10.0), (20.0, 0.0), (10.0, 0.0), (10.0, 10.0),
        )

    def test_properties_passed_through(self, topology):
        _, east = ingest(topology)
        assert east.properties["iso_a3"] == "EST"

    def test_json_bytes_accepted(self, topology):
        features = ingest(json.dumps(topology).encode("utf-8"))
        assert len(features) == 2

    def test_multipolygon(self, topology):
        topology["objects"]["countries"]["geometries"] = [
            {"type": "MultiPolygon", "arcs": [[[0, 1, 3]], [[2, ~1]]], "id": 5},
        ]
        (feature,) = ingest(topology)
        assert isinstance(feature.geometry, MultiPolygon)
        assert len(feature.geometry.polygons) == 2

    def test_arc_index_out_of_range(self, topology):
        topology["objects"]["countries"]["geometries"][1]["arcs"] = [[2, 99]]
        with pytest.raises(TopologyParseError, match="out of range") as info:
            ingest(topology)
        assert info.value.record == 1

    def test_object_selection(self, topology):
        topology["objects"]["land"] = topology["objects"].pop("countries")
        assert len(ingest(topology)) == 2  # the only object
        topology["objects"]["other"] = {"type": "GeometryCollection", "geometries": []}
        with pytest.raises(TopologyParseError, match="object_name"):
            ingest(topology)
        assert len(ingest(topology, object_name="land")) == 2
        assert ingest(topology, object_name="other") == []

    def test_missing_object(self, topology):
        with pytest.raises(TopologyParseError, match="no object named"):
            ingest(topology, object_name="rivers")

    def test_missing_arcs(self, topology):
        del topology["objects"]["countries"]["geometries"][0]["arcs"]
        with pytest.raises(TopologyParseError) as info:
            ingest(topology)
        assert info.value.record == 0


# ═══════════════════════════════════════════════════════════════════
# GeoJSON
# ═══════════════════════════════════════════════════════════════════

class TestIngestGeoJSON:
    def test_feature_collection(self):
        features = ingest(_collection(_feature([SQUARE], fid=7, name="Testland")))
        (feature,) = features
        assert feature.id == 7
        assert feature.name == "Testland"
        assert isinstance(feature.geometry, Polygon)
        assert feature.centroid is None and feature.bounds is None

    def test_single_feature_and_list(self):
        feature = _feature([SQUARE], fid=3, name="A")
        assert ingest(feature)[0].id == 3
        assert ingest([feature])[0].id == 3

    def test_winding_preserved(self):
        clockwise = [[0, 0], [10, 0], [10, 10], [0, 10]]
        (feature,) = ingest(_collection(_feature([clockwise], fid=1)))
        assert feature.geometry.outer == tuple((float(x), float(y)) for x, y in clockwise)

    def test_hole_kept(self):
        hole = [[2, 2], [2, 4], [4, 4]]
        (feature,) = ingest(_collection(_feature([SQUARE, hole], fid=1)))
        assert len(feature.geometry.holes) == 1

    def test_empty_polygon_is_allowed(self):
        (feature,) = ingest(_collection(_feature([], fid=1)))
        assert feature.vertex_count() == 0


class TestIdAssignment:
    def test_fallback_is_index_plus_one(self):
        features = ingest(_collection(
            _feature([SQUARE], name="A"),
            _feature([SQUARE], name="B"),
            _feature([SQUARE], name="C"),
        ))
        assert [f.id for f in features] == [1, 2, 3]

    def test_non_integral_ids_fall_back(self):
        features = ingest(_collection(
            _feature([SQUARE], fid="FRA"),
            _feature([SQUARE], fid=2.5),
            _feature([SQUARE], fid=True),
        ))
        assert [f.id for f in features] == [1, 2, 3]

    def test_integral_float_accepted(self):
        (feature,) = ingest(_collection(_feature([SQUARE], fid=12.0)))
        assert feature.id == 12

    def test_max_id_accepted(self):
        (feature,) = ingest(_collection(_feature([SQUARE], fid=MAX_FEATURE_ID)))
        assert feature.id == MAX_FEATURE_ID

    @pytest.mark.parametrize("bad", [0, -4, 2 ** 24 - 1, 2 ** 24, "16777216"])
    def test_out_of_range(self, bad):
        with pytest.raises(TopologyParseError, match="outside") as info:
            ingest(_collection(_feature([SQUARE], fid=1), _feature([SQUARE], fid=bad)))
        assert info.value.record == 1

    def test_duplicate_declared_ids(self):
        with pytest.raises(DuplicateIdError) as info:
            ingest(_collection(
                _feature([SQUARE], fid=9, name="A"),
                _feature([SQUARE], fid=9, name="B"),
            ))
        assert isinstance(info.value, TopologyParseError)
        assert info.value.record == 1
        assert info.value.feature_id == 9

    def test_fallback_skips_declared_ids(self):
        features = ingest(_collection(
            _feature([SQUARE], fid="004"),
            _feature([SQUARE], fid="008"),
            _feature([SQUARE], fid="010"),
            _feature([SQUARE], name="Disputed"),
        ))
        assert [f.id for f in features] == [4, 8, 10, 1]

    def test_fallback_declared_later_in_input(self):
        features = ingest(_collection(
            _feature([SQUARE]),
            _feature([SQUARE]),
            _feature([SQUARE], fid=1),
            _feature([SQUARE], fid=3),
        ))
        ids = [f.id for f in features]
        assert ids == [2, 4, 1, 3]
        assert len(set(ids)) == len(ids)

    def test_ids_stable_across_loads(self, topology):
        first = [(f.id, f.name) for f in ingest(topology)]
        second = [(f.id, f.name) for f in ingest(json.dumps(topology))]
        assert first == second


class TestNames:
    def test_placeholder_uses_index(self):
        features = ingest(_collection(
            _feature([SQUARE], fid=5, name="Named"),
            _feature([SQUARE], fid=6),
            _feature([SQUARE], fid=7, name="   "),
        ))
        assert [f.name for f in features] == [
            "Named", "Unnamed region 1", "Unnamed region 2",
        ]

    def test_non_string_name(self):
        (feature,) = ingest(_collection(_feature([SQUARE], fid=5, name=123)))
        assert feature.name == "Unnamed region 0"


# ═══════════════════════════════════════════════════════════════════
# Malformed input
# ═══════════════════════════════════════════════════════════════════

class TestMalformed:
    def test_missing_coordinates(self):
        bad = _feature([SQUARE], fid=2)
        del bad["geometry"]["coordinates"]
        with pytest.raises(TopologyParseError, match="no coordinate array") as info:
            ingest(_collection(_feature([SQUARE], fid=1), bad))
        assert info.value.record == 1

    def test_missing_geometry(self):
        with pytest.raises(TopologyParseError, match="no geometry"):
            ingest(_collection({"type": "Feature", "properties": {}}))

    def test_non_numeric_coordinate(self):
        with pytest.raises(TopologyParseError, match="Non-numeric"):
            ingest(_collection(_feature([[[0, 0], [0, "ten"], [10, 10]]], fid=1)))

    def test_boolean_coordinate(self):
        with pytest.raises(TopologyParseError):
            ingest(_collection(_feature([[[0, 0], [0, True], [10, 10]]], fid=1)))

    def test_nan_coordinate(self):
        with pytest.raises(TopologyParseError, match="Non-finite"):
            ingest(_collection(_feature([[[0, 0], [0, float("nan")], [10, 10]]], fid=1)))

    def test_short_position(self):
        with pytest.raises(TopologyParseError, match="Invalid position"):
            ingest(_collection(_feature([[[0, 0], [5], [10, 10]]], fid=1)))

    def test_ring_not_an_array(self):
        with pytest.raises(TopologyParseError):
            ingest(_collection(_feature(["oops"], fid=1)))

    def test_unsupported_geometry_type(self):
        with pytest.raises(TopologyParseError, match="Unsupported geometry"):
            ingest(_collection(_feature([0, 0], fid=1, kind="Point")))

    def test_unknown_payload_type(self):
        with pytest.raises(TopologyParseError):
            ingest({"type": "Sphere"})

    def test_error_message_names_record(self):
        with pytest.raises(TopologyParseError, match=r"record 0, id 16777216"):
            ingest(_collection(_feature([SQUARE], fid=2 ** 24)))
