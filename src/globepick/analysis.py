"""Per-feature centroid and bounding box.

Both are computed in a single walk over every vertex of every ring.
The centroid is the plain vertex average, not an area-weighted one: good
enough to aim a camera, but a feature whose rings straddle the
antimeridian (vertices near +179° and -179°) averages to a longitude near
0°, on the wrong side of the globe.  Bounds have the same limitation.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, List, Tuple

from .geometry import iter_vertices
from .models import EMPTY_BOUNDS, Bounds, Feature, Geometry, LatLon


def centroid_and_bounds(geometry: Geometry) -> Tuple[LatLon, Bounds]:
    """Vertex-average centroid and min/max bounds of *geometry*.

    A geometry without vertices yields ``LatLon(0, 0)`` and the inverted
    :data:`~globepick.models.EMPTY_BOUNDS`.
    """
    count = 0
    sum_lat = sum_lon = 0.0
    min_lat = min_lon = math.inf
    max_lat = max_lon = -math.inf
    for lon, lat in iter_vertices(geometry):
        count += 1
        sum_lat += lat
        sum_lon += lon
        if lat < min_lat:
            min_lat = lat
        if lat > max_lat:
            max_lat = lat
        if lon < min_lon:
            min_lon = lon
        if lon > max_lon:
            max_lon = lon

    if count == 0:
        return LatLon(0.0, 0.0), EMPTY_BOUNDS
    return (
        LatLon(sum_lat / count, sum_lon / count),
        Bounds(min_lat, max_lat, min_lon, max_lon),
    )


def vertex_centroid(geometry: Geometry) -> LatLon:
    return centroid_and_bounds(geometry)[0]


def geometry_bounds(geometry: Geometry) -> Bounds:
    return centroid_and_bounds(geometry)[1]


def analyse(features: Iterable[Feature]) -> List[Feature]:
    """Return copies of *features* with ``centroid`` and ``bounds`` filled in."""
    analysed: List[Feature] = []
    for feature in features:
        centroid, bounds = centroid_and_bounds(feature.geometry)
        analysed.append(replace(feature, centroid=centroid, bounds=bounds))
    return analysed
