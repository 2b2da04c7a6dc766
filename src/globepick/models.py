"""Domain models shared across the ingestion and picking modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple, Optional, Tuple, Union

Position = Tuple[float, float]
"""A ``(longitude, latitude)`` pair in degrees, in input order."""

Ring = Tuple[Position, ...]
RingSet = Tuple[Ring, ...]
Point3D = Tuple[float, float, float]

MAX_FEATURE_ID = (1 << 24) - 2
"""Largest id that can be colour-encoded; ``2**24 - 1`` (white) is not assignable."""

NO_FEATURE = 0
"""Reserved sentinel id, encoded as black in the picking raster."""


class LatLon(NamedTuple):
    lat: float
    lon: float


class Bounds(NamedTuple):
    """Axis-aligned geographic bounds in degrees.

    An inverted tuple (``min_lat > max_lat``) means the geometry had no
    vertices; check :attr:`is_empty` before using it.
    """

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @property
    def is_empty(self) -> bool:
        return self.min_lat > self.max_lat or self.min_lon > self.max_lon

    @property
    def center(self) -> Optional[LatLon]:
        if self.is_empty:
            return None
        return LatLon(
            (self.min_lat + self.max_lat) / 2.0,
            (self.min_lon + self.max_lon) / 2.0,
        )


EMPTY_BOUNDS = Bounds(90.0, -90.0, 180.0, -180.0)


@dataclass(frozen=True)
class Polygon:
    """One ring-set: the first ring is the outer boundary, the rest are holes."""

    rings: RingSet

    @property
    def outer(self) -> Ring:
        return self.rings[0] if self.rings else ()

    @property
    def holes(self) -> RingSet:
        return self.rings[1:]

    def vertex_count(self) -> int:
        return sum(len(ring) for ring in self.rings)


@dataclass(frozen=True)
class MultiPolygon:
    polygons: Tuple[Polygon, ...]

    def vertex_count(self) -> int:
        return sum(p.vertex_count() for p in self.polygons)


Geometry = Union[Polygon, MultiPolygon]


def _freeze(properties: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(properties or {}))


@dataclass(frozen=True)
class Feature:
    """One nameable region with its boundary geometry and stable id.

    ``centroid`` and ``bounds`` stay *None* until the feature has been
    through :func:`~globepick.analysis.analyse`.
    """

    id: int
    name: str
    geometry: Geometry
    centroid: Optional[LatLon] = None
    bounds: Optional[Bounds] = None
    properties: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.properties, MappingProxyType):
            object.__setattr__(self, "properties", _freeze(self.properties))

    @property
    def polygons(self) -> Tuple[Polygon, ...]:
        if isinstance(self.geometry, MultiPolygon):
            return self.geometry.polygons
        return (self.geometry,)

    @property
    def geometry_type(self) -> str:
        return type(self.geometry).__name__

    def vertex_count(self) -> int:
        return self.geometry.vertex_count()

    def is_analysed(self) -> bool:
        return self.centroid is not None and self.bounds is not None


@dataclass(frozen=True)
class BorderPolyline:
    """One projected ring, ready for outline rendering."""

    feature_id: int
    points: Tuple[Point3D, ...]

    def __len__(self) -> int:
        return len(self.points)
