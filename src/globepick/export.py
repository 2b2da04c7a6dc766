"""Atlas export — JSON summary of every feature for UI collaborators.

Quiz and menu code needs names, ids, centroids and bounds but not the
geometry or the raster.  This module flattens a :class:`CountryAtlas`
into a JSON-serialisable payload.

Functions
---------
- :func:`export_atlas_payload` — build the export dict
- :func:`export_atlas_json` — write payload to a JSON file
- :func:`validate_atlas_payload` — lightweight structural check
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from .atlas import CountryAtlas

_EXPORT_VERSION = "1.0"


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return round(value, 6)
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    return str(value)


def export_atlas_payload(atlas: CountryAtlas) -> Dict[str, Any]:
    """Build a JSON-serialisable summary of *atlas*.

    The returned dict has two top-level keys:

    ``metadata``
        Version, feature count, raster size and globe radius.
    ``features``
        One dict per feature, in input order, with id, name, geometry
        type, vertex count, centroid, bounds (``None`` when empty) and
        the input properties.
    """
    metadata = {
        "version": _EXPORT_VERSION,
        "generator": "globepick.export",
        "feature_count": len(atlas.features),
        "raster_width": atlas.raster.width,
        "raster_height": atlas.raster.height,
        "radius": atlas.config.radius,
    }

    features: List[Dict[str, Any]] = []
    for feature in atlas.features:
        centroid = feature.centroid
        bounds = feature.bounds
        features.append({
            "id": feature.id,
            "name": feature.name,
            "geometry_type": feature.geometry_type,
            "vertex_count": feature.vertex_count(),
            "centroid": (
                {"lat": round(centroid.lat, 6), "lon": round(centroid.lon, 6)}
                if centroid is not None else None
            ),
            "bounds": (
                [round(b, 6) for b in bounds]
                if bounds is not None and not bounds.is_empty else None
            ),
            "properties": _json_safe(dict(feature.properties)),
        })

    return {"metadata": metadata, "features": features}


def export_atlas_json(
    atlas: CountryAtlas,
    path: Union[str, Path],
    *,
    indent: int = 2,
) -> Path:
    """Write :func:`export_atlas_payload` output to *path*; returns the path."""
    payload = export_atlas_payload(atlas)
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, indent=indent), encoding="utf-8")
    return out


def validate_atlas_payload(payload: Dict[str, Any]) -> List[str]:
    """Validate an atlas export payload against the expected structure.

    Returns a list of error messages (empty = valid).  For formal
    validation use ``schemas/atlas.schema.json`` with ``jsonschema``.
    """
    errors: List[str] = []

    for key in ("metadata", "features"):
        if key not in payload:
            errors.append(f"Missing top-level key: {key}")

    meta = payload.get("metadata", {})
    for key in ("version", "feature_count", "raster_width", "raster_height"):
        if key not in meta:
            errors.append(f"Missing metadata key: {key}")

    features = payload.get("features", [])
    if not isinstance(features, list):
        errors.append("'features' must be a list")
        return errors

    expected = meta.get("feature_count", 0)
    if len(features) != expected:
        errors.append(f"feature_count mismatch: metadata says {expected}, got {len(features)}")

    seen = set()
    for i, entry in enumerate(features):
        for key in ("id", "name", "centroid", "bounds"):
            if key not in entry:
                errors.append(f"Feature {i}: missing '{key}'")
        fid = entry.get("id")
        if fid in seen:
            errors.append(f"Feature {i}: duplicate id {fid}")
        seen.add(fid)
        bounds = entry.get("bounds")
        if bounds is not None and (not isinstance(bounds, list) or len(bounds) != 4):
            errors.append(f"Feature {i}: 'bounds' must be [min_lat, max_lat, min_lon, max_lon]")

    return errors
