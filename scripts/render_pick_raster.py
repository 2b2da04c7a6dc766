#!/usr/bin/env python3
"""Render the picking raster of a boundary payload to PNG.

Usage:
    python scripts/render_pick_raster.py PAYLOAD.json [--resolution N] [--out DIR]
        [--outline-out PATH] [--export-json PATH] [-v]

The raster PNG encodes each feature id in its pixel colour, so it looks
almost black for small ids; pass --preview to also write a version with
randomised colours that is easier to eyeball.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure src/ is on the path when running as a script
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import numpy as np
from PIL import Image

from globepick.config import AtlasConfig
from globepick.errors import TopologyParseError
from globepick.export import export_atlas_json
from globepick.io import load_json


def _preview(atlas, seed: int) -> Image.Image:
    """Same raster with every id mapped to a random bright colour."""
    rng = np.random.default_rng(seed)
    pixels = atlas.raster.pixels.astype(np.uint32)
    packed = (pixels[..., 0] << 16) | (pixels[..., 1] << 8) | pixels[..., 2]
    ids, inverse = np.unique(packed, return_inverse=True)
    palette = rng.integers(64, 256, size=(len(ids), 3), dtype=np.uint8)
    palette[ids == 0] = (0, 0, 0)
    return Image.fromarray(palette[inverse.reshape(packed.shape)])


def main() -> None:
    parser = argparse.ArgumentParser(description="Render a picking raster")
    parser.add_argument("payload", type=str, help="TopoJSON or GeoJSON file")
    parser.add_argument("--resolution", type=int, default=2048, help="Raster size (default: 2048)")
    parser.add_argument("--object", dest="object_name", help="TopoJSON object name")
    parser.add_argument("--out", type=str, default="exports", help="Output directory")
    parser.add_argument("--preview", action="store_true", help="Also write a false-colour preview")
    parser.add_argument("--seed", type=int, default=42, help="Preview palette seed")
    parser.add_argument("--outline-out", dest="outline_path", help="Write a matplotlib outline plot")
    parser.add_argument("--export-json", dest="export_path", help="Write the atlas JSON summary")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = AtlasConfig(raster_resolution=args.resolution, object_name=args.object_name)
    try:
        atlas = load_json(args.payload, config)
    except TopologyParseError as exc:
        print(f"Cannot load {args.payload}: {exc}")
        raise SystemExit(1)

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = Path(args.payload).stem

    raster_path = out_dir / f"{stem}_pick_{args.resolution}.png"
    atlas.raster.save_png(raster_path)
    print(f"Saved {raster_path}")

    if args.preview:
        preview_path = out_dir / f"{stem}_pick_{args.resolution}_preview.png"
        _preview(atlas, args.seed).save(preview_path)
        print(f"Saved {preview_path}")

    if args.outline_path:
        from globepick.render import render_features_png

        render_features_png(atlas.features, args.outline_path)
        print(f"Saved {args.outline_path}")

    if args.export_path:
        export_atlas_json(atlas, args.export_path)
        print(f"Saved {args.export_path}")

    visible = atlas.raster.ids()
    print(f"  → {len(atlas.features)} features, {len(visible)} visible in raster")
    hidden = [f for f in atlas.features if f.id not in visible]
    for feature in hidden:
        print(f"  ! {feature.name} (id {feature.id}) has no visible pixels")


if __name__ == "__main__":
    main()
