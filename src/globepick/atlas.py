"""Load pipeline and the immutable :class:`CountryAtlas` bundle.

``load`` runs ingestion once, then builds the derived structures side by
side on a thread pool:

* analysis (centroid + bounds) followed by the lookup index,
* the picking raster,
* the border polylines.

They only read the ingested feature list, so nothing is shared or
mutated between workers.  ``load`` returns only after every build has
finished; any failure propagates and nothing is returned.

Usage
-----
>>> from globepick import load
>>> atlas = load(payload)
>>> atlas.pick(u, v)                 # id under the pointer, or None
>>> atlas.get_by_name("france").centroid
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

from .analysis import analyse
from .borders import build_borders, borders_for
from .config import DEFAULT_CONFIG, AtlasConfig
from .geometry import camera_position, surface_uv, texture_uv
from .index import LookupIndex, build_index
from .models import Bounds, BorderPolyline, Feature, LatLon, Point3D
from .raster import PickingRaster, build_raster
from .topology import ingest

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ═══════════════════════════════════════════════════════════════════
# Atlas
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class CountryAtlas:
    """Everything derived from one boundary payload.

    All members are immutable and built together by :func:`load`; query
    methods are pure reads and safe to call from several threads.

    Attributes
    ----------
    features : tuple of Feature
        Analysed features, in input order.
    raster : PickingRaster
        Colour-coded picking bitmap.
    index : LookupIndex
        Id and name lookup.
    borders : tuple of BorderPolyline
        Projected outlines for the renderer.
    config : AtlasConfig
        Parameters the atlas was built with.
    elapsed : mapping of str to float
        Wall-clock seconds per build stage.
    """

    features: Tuple[Feature, ...]
    raster: PickingRaster
    index: LookupIndex
    borders: Tuple[BorderPolyline, ...]
    config: AtlasConfig = DEFAULT_CONFIG
    elapsed: Mapping[str, float] = field(default_factory=dict)

    # ── Picking ─────────────────────────────────────────────────────

    def pick(self, u: float, v: float) -> Optional[int]:
        """Id of the feature at texture-space ``(u, v)``, or *None*."""
        return self.raster.pick(u, v)

    def pick_feature(self, u: float, v: float) -> Optional[Feature]:
        feature_id = self.pick(u, v)
        if feature_id is None:
            return None
        return self.index.get_by_id(feature_id)

    def pick_lat_lon(self, lat: float, lon: float) -> Optional[int]:
        return self.pick(*texture_uv(lat, lon))

    def pick_point(self, point: Sequence[float]) -> Optional[int]:
        """Id of the feature under a 3-D point on the globe surface."""
        return self.pick(*surface_uv(point))

    # ── Lookup ──────────────────────────────────────────────────────

    def get_by_id(self, feature_id: int) -> Optional[Feature]:
        return self.index.get_by_id(feature_id)

    def get_by_name(self, name: str) -> Optional[Feature]:
        return self.index.get_by_name(name)

    def search(self, prefix: str) -> List[Feature]:
        return self.index.search(prefix)

    def centroid(self, feature_id: int) -> Optional[LatLon]:
        feature = self.index.get_by_id(feature_id)
        return feature.centroid if feature is not None else None

    def bounds(self, feature_id: int) -> Optional[Bounds]:
        feature = self.index.get_by_id(feature_id)
        return feature.bounds if feature is not None else None

    # ── Navigation / rendering helpers ──────────────────────────────

    def camera_target(self, feature_id: int, distance: float) -> Optional[Point3D]:
        """Camera position *distance* from the centre, above the feature's centroid."""
        centroid = self.centroid(feature_id)
        if centroid is None:
            return None
        return camera_position(centroid.lat, centroid.lon, distance)

    def borders_for(self, feature_id: int) -> List[BorderPolyline]:
        return borders_for(self.borders, feature_id)

    def __len__(self) -> int:
        return len(self.features)


# ═══════════════════════════════════════════════════════════════════
# Pipeline
# ═══════════════════════════════════════════════════════════════════

def _timed(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Tuple[T, float]:
    start = time.perf_counter()
    result = fn(*args, **kwargs)
    return result, time.perf_counter() - start


def _analyse_and_index(features: Sequence[Feature]) -> Tuple[List[Feature], LookupIndex]:
    analysed = analyse(features)
    return analysed, build_index(analysed)


def load(raw: Any, config: Optional[AtlasConfig] = None) -> CountryAtlas:
    """Build a :class:`CountryAtlas` from a boundary payload.

    Parameters
    ----------
    raw : bytes, str, mapping or list
        Anything :func:`~globepick.topology.ingest` accepts.
    config : AtlasConfig, optional
        Defaults to :data:`~globepick.config.DEFAULT_CONFIG`.

    Raises
    ------
    TopologyParseError
        Malformed payload (including :class:`DuplicateIdError`).
    """
    config = config or DEFAULT_CONFIG
    elapsed: Dict[str, float] = {}

    features, elapsed["ingest"] = _timed(ingest, raw, object_name=config.object_name)

    if config.max_workers == 1:
        (analysed, index), elapsed["analyse"] = _timed(_analyse_and_index, features)
        raster, elapsed["raster"] = _timed(build_raster, features, config.raster_resolution)
        borders, elapsed["borders"] = _timed(
            build_borders, features, config.radius, config.border_offset,
        )
    else:
        with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
            analysis_job = pool.submit(_timed, _analyse_and_index, features)
            raster_job = pool.submit(_timed, build_raster, features, config.raster_resolution)
            borders_job = pool.submit(
                _timed, build_borders, features, config.radius, config.border_offset,
            )
            (analysed, index), elapsed["analyse"] = analysis_job.result()
            raster, elapsed["raster"] = raster_job.result()
            borders, elapsed["borders"] = borders_job.result()

    logger.info(
        "Loaded %d features (%d border lines) in %.3fs",
        len(analysed), len(borders), sum(elapsed.values()),
    )
    return CountryAtlas(
        features=tuple(analysed),
        raster=raster,
        index=index,
        borders=tuple(borders),
        config=config,
        elapsed=MappingProxyType(elapsed),
    )


async def load_async(source: Any, config: Optional[AtlasConfig] = None) -> CountryAtlas:
    """Await the raw payload from *source*, then :func:`load` it in a worker thread.

    *source* may be the payload itself, an awaitable resolving to it, or a
    callable returning either.  Awaiting the payload is the only
    suspension point.  If the task is cancelled, no atlas is returned;
    the worker thread finishes in the background and its result is
    dropped.
    """
    raw = source() if callable(source) else source
    if inspect.isawaitable(raw):
        raw = await raw
    return await asyncio.to_thread(load, raw, config)
