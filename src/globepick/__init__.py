"""globepick — country boundary ingestion and colour-coded globe picking.

Public API is organised into layers:

- **Core** — models, errors, configuration, coordinate conversions
- **Ingestion** — TopoJSON / GeoJSON payloads → features
- **Derived structures** — analysis, picking raster, lookup index, borders
- **Pipeline** — ``load`` → immutable :class:`CountryAtlas`
- **Export / rendering** — JSON summary, debug PNG (requires matplotlib)
"""

# ── Core ────────────────────────────────────────────────────────────
from .models import (
    Bounds,
    BorderPolyline,
    EMPTY_BOUNDS,
    Feature,
    LatLon,
    MAX_FEATURE_ID,
    MultiPolygon,
    NO_FEATURE,
    Polygon,
)
from .errors import DuplicateIdError, GlobePickError, TopologyParseError
from .config import AtlasConfig, DEFAULT_CONFIG
from .geometry import (
    camera_position,
    equirectangular_uv,
    project,
    surface_uv,
    texture_uv,
    unproject,
)

# ── Ingestion ───────────────────────────────────────────────────────
from .topology import decode_arcs, ingest, parse_payload

# ── Derived structures ──────────────────────────────────────────────
from .analysis import analyse, centroid_and_bounds, geometry_bounds, vertex_centroid
from .raster import PickingRaster, build_raster, decode_color, encode_id, pick
from .index import LookupIndex, build_index
from .borders import borders_to_segments, build_borders

# ── Pipeline ────────────────────────────────────────────────────────
from .atlas import CountryAtlas, load, load_async
from .io import load_json, read_payload

# ── Export ──────────────────────────────────────────────────────────
from .export import export_atlas_json, export_atlas_payload, validate_atlas_payload

__all__ = [
    # Core
    "Bounds",
    "BorderPolyline",
    "EMPTY_BOUNDS",
    "Feature",
    "LatLon",
    "MAX_FEATURE_ID",
    "MultiPolygon",
    "NO_FEATURE",
    "Polygon",
    "DuplicateIdError",
    "GlobePickError",
    "TopologyParseError",
    "AtlasConfig",
    "DEFAULT_CONFIG",
    "camera_position",
    "equirectangular_uv",
    "project",
    "surface_uv",
    "texture_uv",
    "unproject",
    # Ingestion
    "decode_arcs",
    "ingest",
    "parse_payload",
    # Derived structures
    "analyse",
    "centroid_and_bounds",
    "geometry_bounds",
    "vertex_centroid",
    "PickingRaster",
    "build_raster",
    "decode_color",
    "encode_id",
    "pick",
    "LookupIndex",
    "build_index",
    "borders_to_segments",
    "build_borders",
    # Pipeline
    "CountryAtlas",
    "load",
    "load_async",
    "load_json",
    "read_payload",
    # Export
    "export_atlas_json",
    "export_atlas_payload",
    "validate_atlas_payload",
]
