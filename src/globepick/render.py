from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

from .geometry import iter_polygons
from .models import Feature


def render_features_png(
    features: Sequence[Feature],
    output_path: str | Path,
    face_alpha: float = 0.25,
    edge_color: str = "#2b2b2b",
    face_color: str = "#5aa9e6",
    centroid_color: str = "#d1495b",
    centroid_size: float = 6.0,
    show_holes: bool = True,
    dpi: int = 150,
) -> None:
    """Render features on an equirectangular lon/lat plot.

    Outer rings are filled, holes outlined, centroids marked.  Requires
    matplotlib; imported lazily to keep core package lightweight.
    """
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from matplotlib.patches import Polygon
    except ImportError as exc:  # pragma: no cover - requires optional dep
        raise RuntimeError(
            "matplotlib is required for rendering. Install with `pip install matplotlib`."
        ) from exc

    fig, ax = plt.subplots(figsize=(12, 6))

    for feature in features:
        _draw_feature(ax, feature, Polygon, edge_color, face_color, face_alpha, show_holes)

    centroids = [f.centroid for f in features if f.centroid is not None]
    if centroids:
        ax.scatter(
            [c.lon for c in centroids],
            [c.lat for c in centroids],
            s=centroid_size,
            c=centroid_color,
            zorder=3,
        )

    ax.set_xlim(-180, 180)
    ax.set_ylim(-90, 90)
    ax.set_aspect("equal", "box")
    ax.set_xlabel("longitude")
    ax.set_ylabel("latitude")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)


def _draw_feature(
    ax,
    feature: Feature,
    polygon_cls,
    edge_color: str,
    face_color: str,
    face_alpha: float,
    show_holes: bool,
) -> None:
    for polygon in iter_polygons(feature.geometry):
        if len(polygon.outer) >= 3:
            ax.add_patch(
                polygon_cls(
                    _xy(polygon.outer),
                    closed=True,
                    facecolor=face_color,
                    edgecolor=edge_color,
                    linewidth=0.4,
                    alpha=face_alpha,
                )
            )
        if not show_holes:
            continue
        for hole in polygon.holes:
            if len(hole) >= 3:
                ax.add_patch(
                    polygon_cls(
                        _xy(hole),
                        closed=True,
                        fill=False,
                        edgecolor=edge_color,
                        linewidth=0.3,
                        linestyle="--",
                    )
                )


def _xy(ring: Iterable[tuple]) -> list:
    return [[lon, lat] for lon, lat in ring]
