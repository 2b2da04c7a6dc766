"""Boundary payload ingestion — TopoJSON topologies and GeoJSON features.

Turns a raw payload into a flat list of :class:`~globepick.models.Feature`
records with stable integer ids.  Two encodings are understood:

* **TopoJSON** ``Topology`` — arcs shared between neighbouring regions,
  optionally quantised and delta-encoded (``transform``).  Geometries
  reference arcs by index; a negative index ``~i`` means arc *i* walked
  backwards.
* **GeoJSON** ``FeatureCollection`` / ``Feature`` (or a bare list of
  features) — rings already resolved to coordinates.

Ingestion is all-or-nothing: the first bad record raises
:class:`~globepick.errors.TopologyParseError` and no features are returned.

Functions
---------
- :func:`parse_payload` — decode JSON bytes/text, pass structures through
- :func:`decode_arcs` — resolve quantised, delta-encoded arcs
- :func:`ingest` — main entry point
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import DuplicateIdError, TopologyParseError
from .models import (
    MAX_FEATURE_ID,
    Feature,
    Geometry,
    MultiPolygon,
    Polygon,
    Position,
    Ring,
)

logger = logging.getLogger(__name__)

DEFAULT_OBJECT_NAME = "countries"

_Record = Tuple[str, Any, Any, Mapping[str, Any]]
"""``(geometry_type, coordinates, declared_id, properties)``."""


# ═══════════════════════════════════════════════════════════════════
# Payload decoding
# ═══════════════════════════════════════════════════════════════════

def parse_payload(data: Any) -> Any:
    """Decode *data* if it is JSON bytes or text; return structures unchanged."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TopologyParseError(f"Payload is not UTF-8: {exc}") from exc
    if isinstance(data, str):
        try:
            return json.loads(data)
        except json.JSONDecodeError as exc:
            raise TopologyParseError(f"Payload is not valid JSON: {exc}") from exc
    if isinstance(data, (Mapping, list, tuple)):
        return data
    raise TopologyParseError(f"Unsupported payload type: {type(data).__name__}")


def _number(value: Any, what: str, record: Optional[int]) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TopologyParseError(f"Non-numeric {what}: {value!r}", record=record)
    result = float(value)
    if not math.isfinite(result):
        raise TopologyParseError(f"Non-finite {what}: {value!r}", record=record)
    return result


def _position(value: Any, record: Optional[int]) -> Position:
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        raise TopologyParseError(f"Invalid position: {value!r}", record=record)
    return (_number(value[0], "longitude", record), _number(value[1], "latitude", record))


def _sequence(value: Any, what: str, record: Optional[int]) -> Sequence[Any]:
    if not isinstance(value, (list, tuple)):
        raise TopologyParseError(f"Expected an array of {what}, got {value!r}", record=record)
    return value


# ═══════════════════════════════════════════════════════════════════
# TopoJSON arcs
# ═══════════════════════════════════════════════════════════════════

def decode_arcs(topology: Mapping[str, Any]) -> List[Tuple[Position, ...]]:
    """Resolve every arc of *topology* to absolute ``(lon, lat)`` positions.

    With a ``transform`` the arcs are quantised and delta-encoded: each
    position is an offset from the previous one, and the running sum is
    scaled and translated.  Without one, positions are absolute.
    """
    raw_arcs = _sequence(topology.get("arcs"), "arcs", None)
    transform = topology.get("transform")
    if transform is not None:
        try:
            sx, sy = (_number(v, "transform scale", None) for v in transform["scale"])
            tx, ty = (_number(v, "transform translate", None) for v in transform["translate"])
        except (KeyError, TypeError, ValueError) as exc:
            if isinstance(exc, TopologyParseError):
                raise
            raise TopologyParseError(f"Invalid topology transform: {transform!r}") from exc

    arcs: List[Tuple[Position, ...]] = []
    for arc_index, raw_arc in enumerate(raw_arcs):
        points = _sequence(raw_arc, f"positions in arc {arc_index}", None)
        decoded: List[Position] = []
        if transform is None:
            decoded = [_position(p, None) for p in points]
        else:
            qx = qy = 0.0
            for p in points:
                dx, dy = _position(p, None)
                qx += dx
                qy += dy
                decoded.append((qx * sx + tx, qy * sy + ty))
        arcs.append(tuple(decoded))
    return arcs


def _stitch_ring(
    refs: Any,
    arcs: Sequence[Tuple[Position, ...]],
    record: int,
) -> Ring:
    """Concatenate the arcs referenced by *refs* into one ring."""
    points: List[Position] = []
    for ref in _sequence(refs, "arc indices", record):
        if isinstance(ref, bool) or not isinstance(ref, int):
            raise TopologyParseError(f"Arc index is not an integer: {ref!r}", record=record)
        index = ~ref if ref < 0 else ref
        if index >= len(arcs):
            raise TopologyParseError(
                f"Arc index {ref} out of range ({len(arcs)} arcs)", record=record,
            )
        arc = arcs[index]
        if ref < 0:
            arc = arc[::-1]
        # Consecutive arcs share their joining point.
        if points and arc:
            arc = arc[1:]
        points.extend(arc)
    return tuple(points)


def _topology_records(
    topology: Mapping[str, Any],
    object_name: Optional[str],
) -> Tuple[List[_Record], List[Tuple[Position, ...]]]:
    objects = topology.get("objects")
    if not isinstance(objects, Mapping) or not objects:
        raise TopologyParseError("Topology has no objects")

    if object_name is None:
        if DEFAULT_OBJECT_NAME in objects:
            object_name = DEFAULT_OBJECT_NAME
        elif len(objects) == 1:
            object_name = next(iter(objects))
        else:
            raise TopologyParseError(
                f"Topology has several objects {sorted(objects)}; pass object_name",
            )
    if object_name not in objects:
        raise TopologyParseError(f"Topology has no object named {object_name!r}")

    records = [
        (geom.get("type"), geom.get("arcs"), geom.get("id"), geom.get("properties") or {})
        for geom in _flatten_collection(objects[object_name])
    ]
    return records, decode_arcs(topology)


def _flatten_collection(obj: Any) -> Iterator[Mapping[str, Any]]:
    if not isinstance(obj, Mapping):
        raise TopologyParseError(f"Topology object is not a mapping: {obj!r}")
    if obj.get("type") == "GeometryCollection":
        for child in _sequence(obj.get("geometries"), "geometries", None):
            yield from _flatten_collection(child)
    else:
        yield obj


# ═══════════════════════════════════════════════════════════════════
# GeoJSON features
# ═══════════════════════════════════════════════════════════════════

def _geojson_records(payload: Any) -> List[_Record]:
    if isinstance(payload, Mapping):
        kind = payload.get("type")
        if kind == "FeatureCollection":
            features = _sequence(payload.get("features"), "features", None)
        elif kind == "Feature":
            features = [payload]
        else:
            raise TopologyParseError(f"Unsupported payload type: {kind!r}")
    else:
        features = payload

    records: List[_Record] = []
    for index, feature in enumerate(features):
        if not isinstance(feature, Mapping):
            raise TopologyParseError(f"Feature is not a mapping: {feature!r}", record=index)
        geometry = feature.get("geometry")
        if not isinstance(geometry, Mapping):
            raise TopologyParseError("Feature has no geometry", record=index)
        records.append((
            geometry.get("type"),
            geometry.get("coordinates"),
            feature.get("id"),
            feature.get("properties") or {},
        ))
    return records


# ═══════════════════════════════════════════════════════════════════
# Record → Feature
# ═══════════════════════════════════════════════════════════════════

def _declared_id(declared: Any, index: int) -> Optional[int]:
    """Declared integer id if usable, else *None*.

    Ids must be integral: ints, integral floats, or all-digit strings
    such as world-atlas ISO numeric codes (``"004"``).  Anything else is
    ignored and the record gets a fallback id.  A usable id outside
    ``[1, MAX_FEATURE_ID]`` is an error.
    """
    value: Optional[int] = None
    if isinstance(declared, bool):
        value = None
    elif isinstance(declared, int):
        value = declared
    elif isinstance(declared, float) and declared.is_integer():
        value = int(declared)
    elif isinstance(declared, str) and declared.isascii() and declared.isdigit():
        value = int(declared)

    if value is None:
        if declared is not None:
            logger.debug("record %d: ignoring non-integral id %r", index, declared)
        return None
    if not 1 <= value <= MAX_FEATURE_ID:
        raise TopologyParseError(
            f"Feature id {declared!r} outside [1, {MAX_FEATURE_ID}]",
            record=index, feature_id=value,
        )
    return value


def _assign_ids(records: Sequence[_Record]) -> List[int]:
    """Declared ids where usable; the rest take the smallest free ids in input order.

    Fallback ids never collide with a declared id, so only two records
    declaring the same id raise :class:`DuplicateIdError`.
    """
    declared: List[Optional[int]] = []
    seen: Dict[int, int] = {}
    for index, record in enumerate(records):
        value = _declared_id(record[2], index)
        if value is not None:
            if value in seen:
                raise DuplicateIdError(
                    f"Feature id {value} already used by record {seen[value]}",
                    record=index, feature_id=value,
                )
            seen[value] = index
        declared.append(value)

    ids: List[int] = []
    candidate = 1
    for index, value in enumerate(declared):
        if value is None:
            while candidate in seen:
                candidate += 1
            if candidate > MAX_FEATURE_ID:
                raise TopologyParseError("No free feature id left", record=index)
            value = candidate
            candidate += 1
            logger.debug("record %d: assigned fallback id %d", index, value)
        ids.append(value)
    return ids


def _resolve_name(properties: Mapping[str, Any], index: int) -> str:
    name = properties.get("name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    logger.debug("record %d: no name, using placeholder", index)
    return f"Unnamed region {index}"


def _polygon(rings: Any, resolve_ring, record: int) -> Polygon:
    return Polygon(tuple(resolve_ring(r) for r in _sequence(rings, "rings", record)))


def _build_geometry(
    geometry_type: Any,
    coordinates: Any,
    record: int,
    arcs: Optional[Sequence[Tuple[Position, ...]]],
) -> Geometry:
    if coordinates is None:
        raise TopologyParseError(
            f"{geometry_type or 'Geometry'} has no coordinate array", record=record,
        )

    if arcs is None:
        def resolve_ring(raw: Any) -> Ring:
            return tuple(_position(p, record) for p in _sequence(raw, "positions", record))
    else:
        def resolve_ring(raw: Any) -> Ring:
            return _stitch_ring(raw, arcs, record)

    if geometry_type == "Polygon":
        return _polygon(coordinates, resolve_ring, record)
    if geometry_type == "MultiPolygon":
        return MultiPolygon(tuple(
            _polygon(rings, resolve_ring, record)
            for rings in _sequence(coordinates, "polygons", record)
        ))
    raise TopologyParseError(f"Unsupported geometry type {geometry_type!r}", record=record)


def _is_topology(payload: Any) -> bool:
    return isinstance(payload, Mapping) and payload.get("type") == "Topology"


def ingest(raw: Any, *, object_name: Optional[str] = None) -> List[Feature]:
    """Parse a boundary payload into features, in input order.

    Parameters
    ----------
    raw : bytes, str, mapping or list
        A TopoJSON ``Topology``, a GeoJSON ``FeatureCollection`` or
        ``Feature``, a list of GeoJSON features, or the JSON text of any
        of those.
    object_name : str, optional
        TopoJSON object to read (default ``"countries"`` or the only one).

    Returns
    -------
    list of Feature
        One feature per input record, without centroid or bounds.

    Raises
    ------
    TopologyParseError
        On any malformed record; :class:`DuplicateIdError` when two
        records declare the same id.
    """
    payload = parse_payload(raw)

    arcs: Optional[List[Tuple[Position, ...]]] = None
    if _is_topology(payload):
        records, arcs = _topology_records(payload, object_name)
    else:
        records = _geojson_records(payload)

    ids = _assign_ids(records)

    features: List[Feature] = []
    for index, (geometry_type, coordinates, _, properties) in enumerate(records):
        if not isinstance(properties, Mapping):
            raise TopologyParseError("Feature properties are not a mapping", record=index)
        feature_id = ids[index]
        geometry = _build_geometry(geometry_type, coordinates, index, arcs)
        features.append(Feature(
            id=feature_id,
            name=_resolve_name(properties, index),
            geometry=geometry,
            properties=properties,
        ))

    logger.info(
        "Ingested %d features (%s)",
        len(features), "topology" if arcs is not None else "geojson",
    )
    return features
