"""Load-time configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AtlasConfig:
    """All tuneable parameters of a :func:`~globepick.atlas.load` call.

    Attributes
    ----------
    radius : float
        Globe radius used for border polylines and camera targets.
    raster_resolution : int
        Width and height of the square picking raster, in pixels.
    border_offset : float
        Relative lift of border polylines above the surface
        (``radius * (1 + border_offset)``) to avoid z-fighting.
    object_name : str, optional
        TopoJSON object to read.  Defaults to ``"countries"`` or the only
        object in the topology.
    max_workers : int
        Threads used to build the raster, index and borders side by side.
        ``1`` builds them sequentially on the calling thread.
    """

    radius: float = 1.0
    raster_resolution: int = 2048
    border_offset: float = 0.001
    object_name: Optional[str] = None
    max_workers: int = 3

    def __post_init__(self) -> None:
        if self.radius <= 0:
            raise ValueError("radius must be > 0")
        if self.raster_resolution < 1:
            raise ValueError("raster_resolution must be >= 1")
        if self.border_offset < 0:
            raise ValueError("border_offset must be >= 0")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")


DEFAULT_CONFIG = AtlasConfig()
