"""Colour-coded picking raster — O(1) point → feature lookup.

Every feature is painted into one equirectangular RGB bitmap in a colour
that *is* its id (24-bit packing, ``r = id >> 16``, ``g = id >> 8``,
``b = id``).  Answering "which feature is under this point" is then a
single pixel read.  Black ``(0, 0, 0)`` is the "no feature" sentinel.

Buffer layout
-------------
``PickingRaster.pixels`` is a row-major ``(height, width, 3)`` ``uint8``
array, channels in R, G, B order.  Column 0 is longitude -180°, row 0 is
latitude +90° (equirectangular, both axes linear in degrees).

Painting rules
--------------
* Only the outer ring of each sub-polygon is filled.  Hole rings are
  *not* subtracted, so enclaves and lakes pick as their surrounding
  feature.
* Features are painted in input order; where filled areas overlap, the
  later feature wins.
* Scanlines sample pixel-row centres with a half-open edge rule.  Each
  span covers every pixel column it touches, including a column its end
  crossing only grazes, so two features sharing an edge both paint the
  edge pixels and the later one keeps them.

Functions
---------
- :func:`encode_id` / :func:`decode_color` — id ↔ RGB packing
- :func:`build_raster` — paint every feature
- :func:`pick` — read the id under a texture-space ``(u, v)``
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Set, Tuple, Union

import numpy as np

from .geometry import equirectangular_uv, iter_outer_rings
from .models import NO_FEATURE, Feature, Ring

if TYPE_CHECKING:
    from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION = 2048
SENTINEL_COLOR = (0, 0, 0)
_MAX_PACKED = 0xFFFFFF


# ═══════════════════════════════════════════════════════════════════
# Id ↔ colour
# ═══════════════════════════════════════════════════════════════════

def encode_id(feature_id: int) -> Tuple[int, int, int]:
    """Pack a 24-bit id into an ``(r, g, b)`` triple."""
    if not 0 <= feature_id <= _MAX_PACKED:
        raise ValueError(f"id {feature_id} does not fit in 24 bits")
    return ((feature_id >> 16) & 0xFF, (feature_id >> 8) & 0xFF, feature_id & 0xFF)


def decode_color(r: int, g: int, b: int) -> int:
    """Unpack an ``(r, g, b)`` triple into the id it encodes."""
    return (int(r) << 16) | (int(g) << 8) | int(b)


def _decode_pixels(pixels: np.ndarray) -> np.ndarray:
    p = pixels.astype(np.uint32)
    return (p[..., 0] << 16) | (p[..., 1] << 8) | p[..., 2]


# ═══════════════════════════════════════════════════════════════════
# Raster container
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class PickingRaster:
    """Immutable colour-coded bitmap plus its projection parameters."""

    pixels: np.ndarray
    width: int
    height: int
    projection: str = "equirectangular"
    lon_range: Tuple[float, float] = (-180.0, 180.0)
    lat_range: Tuple[float, float] = (90.0, -90.0)

    def pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        r, g, b = self.pixels[y, x]
        return (int(r), int(g), int(b))

    def id_at_pixel(self, x: int, y: int) -> Optional[int]:
        feature_id = decode_color(*self.pixels[y, x])
        return None if feature_id == NO_FEATURE else feature_id

    def pick(self, u: float, v: float) -> Optional[int]:
        return pick(self, u, v)

    def ids(self) -> Set[int]:
        """Every id painted into the raster (the sentinel excluded)."""
        present = np.unique(_decode_pixels(self.pixels))
        return {int(i) for i in present if i != NO_FEATURE}

    def coverage(self, feature_id: int) -> int:
        """Number of pixels showing *feature_id*."""
        return int(np.count_nonzero(_decode_pixels(self.pixels) == feature_id))

    def to_image(self) -> "Image.Image":
        """The raster as a Pillow RGB image (e.g. to upload as a lookup texture)."""
        from PIL import Image

        return Image.fromarray(self.pixels.copy())

    def save_png(self, path: Union[str, Path]) -> Path:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self.to_image().save(out, format="PNG")
        return out


# ═══════════════════════════════════════════════════════════════════
# Scanline fill
# ═══════════════════════════════════════════════════════════════════

def _fill_polygon(
    buffer: np.ndarray,
    xs: np.ndarray,
    ys: np.ndarray,
    color: Tuple[int, int, int],
) -> int:
    """Even-odd scanline fill of one closed ring given in pixel coordinates.

    Returns the number of spans written.
    """
    height, width = buffer.shape[:2]
    n = len(xs)
    if n < 3:
        return 0

    x0, y0 = xs, ys
    x1, y1 = np.roll(xs, -1), np.roll(ys, -1)

    # Row r crosses an edge when its centre r + 0.5 lies in [ymin, ymax).
    ymin = np.minimum(y0, y1)
    ymax = np.maximum(y0, y1)
    row_start = np.clip(np.ceil(ymin - 0.5), 0, height).astype(np.int64)
    row_end = np.clip(np.ceil(ymax - 0.5), 0, height).astype(np.int64)
    counts = np.maximum(row_end - row_start, 0)
    total = int(counts.sum())
    if total == 0:
        return 0

    edge = np.repeat(np.arange(n), counts)
    first = np.repeat(np.cumsum(counts) - counts, counts)
    rows = row_start[edge] + (np.arange(total) - first)

    ex0, ey0 = x0[edge], y0[edge]
    t = (rows + 0.5 - ey0) / (y1[edge] - ey0)
    crossings = ex0 + t * (x1[edge] - ex0)

    order = np.lexsort((crossings, rows))
    rows = rows[order]
    crossings = crossings[order]
    pairs = len(rows) // 2
    span_rows = rows[0:2 * pairs:2]
    col_start = np.floor(crossings[0:2 * pairs:2]).astype(np.int64)
    # Both ends inclusive.
    col_end = np.floor(crossings[1:2 * pairs:2]).astype(np.int64) + 1
    col_start = np.clip(col_start, 0, width)
    col_end = np.clip(col_end, 0, width)

    written = 0
    for row, c0, c1 in zip(span_rows.tolist(), col_start.tolist(), col_end.tolist()):
        if c1 > c0:
            buffer[row, c0:c1] = color
            written += 1
    return written


def _ring_to_pixels(ring: Ring, width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
    coords = np.asarray(ring, dtype=np.float64).reshape(-1, 2)
    u, v = equirectangular_uv(coords[:, 1], coords[:, 0])
    return u * width, v * height


def build_raster(
    features: Iterable[Feature],
    resolution: int = DEFAULT_RESOLUTION,
) -> PickingRaster:
    """Paint every feature into a ``resolution × resolution`` picking raster.

    Parameters
    ----------
    features : iterable of Feature
        Painted in iteration order; later features win on overlap.
    resolution : int
        Width and height of the raster in pixels.

    Returns
    -------
    PickingRaster
        With a read-only pixel buffer.
    """
    if resolution < 1:
        raise ValueError("resolution must be >= 1")
    width = height = resolution
    buffer = np.zeros((height, width, 3), dtype=np.uint8)

    painted = 0
    for feature in features:
        color = encode_id(feature.id)
        for ring in iter_outer_rings(feature.geometry):
            if len(ring) < 3:
                logger.debug("feature %d: skipping ring with %d vertices", feature.id, len(ring))
                continue
            xs, ys = _ring_to_pixels(ring, width, height)
            _fill_polygon(buffer, xs, ys, color)
        painted += 1

    buffer.setflags(write=False)
    logger.info("Built %dx%d picking raster for %d features", width, height, painted)
    return PickingRaster(pixels=buffer, width=width, height=height)


# ═══════════════════════════════════════════════════════════════════
# Query
# ═══════════════════════════════════════════════════════════════════

def pick(raster: PickingRaster, u: float, v: float) -> Optional[int]:
    """Id of the feature under texture-space ``(u, v)``, or *None*.

    ``v`` is flipped (``y = floor((1 - v) * height)``) because texture
    ``v`` grows northward while raster rows grow southward.  Coordinates
    on or past the edges clamp to the outermost pixel; non-finite input
    picks nothing.
    """
    if not (math.isfinite(u) and math.isfinite(v)):
        return None
    x = min(max(math.floor(u * raster.width), 0), raster.width - 1)
    y = min(max(math.floor((1.0 - v) * raster.height), 0), raster.height - 1)
    return raster.id_at_pixel(x, y)
