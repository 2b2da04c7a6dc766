"""Coordinate conversions and geometry walkers used across the package.

Every 3-D position in globepick uses one convention::

    phi   = (90 - lat) * pi / 180
    theta = (lon + 180) * pi / 180
    x = -r * sin(phi) * cos(theta)
    y =  r * cos(phi)
    z =  r * sin(phi) * sin(theta)

:func:`project`, :func:`unproject`, :func:`camera_position` and the border
builder all go through this module, so the sign of ``x`` cannot drift
between call sites.

Two flat parameterisations are provided:

* :func:`equirectangular_uv` — raster space, ``v`` grows southward
  (row 0 is the north pole).
* :func:`texture_uv` — sphere texture space, ``v`` grows northward.
  This is what a ray/sphere intersection hands to ``pick``.
"""

from __future__ import annotations

import math
from typing import Iterator, Sequence, Tuple

from .models import Geometry, MultiPolygon, Point3D, Polygon, Position, Ring


# ═══════════════════════════════════════════════════════════════════
# Sphere ↔ lat/lon
# ═══════════════════════════════════════════════════════════════════

def project(lat: float, lon: float, radius: float = 1.0) -> Point3D:
    """Map ``(lat, lon)`` in degrees to a point on a sphere of *radius*."""
    phi = math.radians(90.0 - lat)
    theta = math.radians(lon + 180.0)
    sin_phi = math.sin(phi)
    return (
        -radius * sin_phi * math.cos(theta),
        radius * math.cos(phi),
        radius * sin_phi * math.sin(theta),
    )


def unproject(point: Sequence[float]) -> Tuple[float, float]:
    """Inverse of :func:`project` for a point at any distance from the origin.

    Returns ``(lat, lon)`` in degrees with ``lon`` wrapped into
    ``[-180, 180)``.  Raises ``ValueError`` for the zero vector.
    """
    x, y, z = float(point[0]), float(point[1]), float(point[2])
    length = math.sqrt(x * x + y * y + z * z)
    if length == 0.0:
        raise ValueError("Cannot unproject the origin")
    ny = max(-1.0, min(1.0, y / length))
    lat = 90.0 - math.degrees(math.acos(ny))
    theta = math.atan2(z, -x)
    lon = _wrap_lon(math.degrees(theta) - 180.0)
    return (lat, lon)


def camera_position(lat: float, lon: float, distance: float) -> Point3D:
    """Camera position *distance* from the origin, looking down on ``(lat, lon)``."""
    return project(lat, lon, distance)


def _wrap_lon(lon: float) -> float:
    wrapped = ((lon + 180.0) % 360.0) - 180.0
    # The modulo can round up to exactly 360 for tiny negative inputs.
    return wrapped - 360.0 if wrapped >= 180.0 else wrapped


# ═══════════════════════════════════════════════════════════════════
# Flat parameterisations
# ═══════════════════════════════════════════════════════════════════

def equirectangular_uv(lat: float, lon: float) -> Tuple[float, float]:
    """Raster-space ``(u, v)``: ``u = (lon + 180) / 360``, ``v = (90 - lat) / 180``."""
    return ((lon + 180.0) / 360.0, (90.0 - lat) / 180.0)


def texture_uv(lat: float, lon: float) -> Tuple[float, float]:
    """Texture-space ``(u, v)`` with ``v`` increasing toward the north pole."""
    u, v = equirectangular_uv(lat, lon)
    return (u, 1.0 - v)


def surface_uv(point: Sequence[float]) -> Tuple[float, float]:
    """Texture-space ``(u, v)`` of a 3-D point on (or above) the globe."""
    lat, lon = unproject(point)
    return texture_uv(lat, lon)


# ═══════════════════════════════════════════════════════════════════
# Geometry walkers
# ═══════════════════════════════════════════════════════════════════

def iter_polygons(geometry: Geometry) -> Iterator[Polygon]:
    """Yield each sub-polygon of a Polygon or MultiPolygon."""
    if isinstance(geometry, MultiPolygon):
        yield from geometry.polygons
    else:
        yield geometry


def iter_rings(geometry: Geometry) -> Iterator[Ring]:
    """Yield every ring (outer and holes) of every sub-polygon."""
    for polygon in iter_polygons(geometry):
        yield from polygon.rings


def iter_outer_rings(geometry: Geometry) -> Iterator[Ring]:
    for polygon in iter_polygons(geometry):
        if polygon.rings:
            yield polygon.outer


def iter_vertices(geometry: Geometry) -> Iterator[Position]:
    """Yield every ``(lon, lat)`` vertex exactly once, ring by ring."""
    for ring in iter_rings(geometry):
        yield from ring
