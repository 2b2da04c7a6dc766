"""Border outlines projected onto the globe.

Every ring (outer and holes) of every feature becomes one polyline of 3-D
points, lifted slightly above the surface so the outline does not
z-fight with the globe mesh.  Outlines are for drawing only; picking goes
through :mod:`globepick.raster`.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

import numpy as np

from .geometry import iter_rings, project
from .models import BorderPolyline, Feature

DEFAULT_BORDER_OFFSET = 0.001


def build_borders(
    features: Iterable[Feature],
    radius: float = 1.0,
    offset: float = DEFAULT_BORDER_OFFSET,
) -> List[BorderPolyline]:
    """Project every ring of every feature at ``radius * (1 + offset)``.

    Rings with fewer than two points cannot form a line and are skipped.
    Polylines come out in feature order, then ring order.
    """
    lifted = radius * (1.0 + offset)
    borders: List[BorderPolyline] = []
    for feature in features:
        for ring in iter_rings(feature.geometry):
            if len(ring) < 2:
                continue
            points = tuple(project(lat, lon, lifted) for lon, lat in ring)
            borders.append(BorderPolyline(feature_id=feature.id, points=points))
    return borders


def borders_for(borders: Iterable[BorderPolyline], feature_id: int) -> List[BorderPolyline]:
    return [b for b in borders if b.feature_id == feature_id]


def borders_to_segments(borders: Sequence[BorderPolyline]) -> np.ndarray:
    """Flatten polylines into a ``float32`` ``(n, 2, 3)`` array of line segments.

    Consecutive points of each polyline become one segment; polylines are
    not joined to each other.  Suitable for a GL ``LINES`` vertex buffer.
    """
    chunks = []
    for border in borders:
        pts = np.asarray(border.points, dtype=np.float32)
        if len(pts) < 2:
            continue
        chunks.append(np.stack([pts[:-1], pts[1:]], axis=1))
    if not chunks:
        return np.zeros((0, 2, 3), dtype=np.float32)
    return np.concatenate(chunks, axis=0)
