from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from .atlas import CountryAtlas, load
from .config import AtlasConfig
from .topology import parse_payload


PathLike = Union[str, Path]


def read_payload(path: PathLike) -> Any:
    return parse_payload(Path(path).read_bytes())


def load_json(path: PathLike, config: Optional[AtlasConfig] = None) -> CountryAtlas:
    return load(read_payload(path), config)
