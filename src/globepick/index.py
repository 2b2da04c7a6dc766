"""Id and name lookup over a loaded feature set."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import DuplicateIdError
from .models import Feature


def normalize_name(name: str) -> str:
    return name.strip().lower()


@dataclass(frozen=True, eq=False)
class LookupIndex:
    """Read-only ``id → Feature`` and ``lowercase name → Feature`` maps.

    Names are matched case-insensitively.  When two features normalise to
    the same name, the later one owns the name; both stay reachable by id.
    """

    by_id: Mapping[int, Feature]
    by_name: Mapping[str, Feature]

    def get_by_id(self, feature_id: int) -> Optional[Feature]:
        return self.by_id.get(feature_id)

    def get_by_name(self, name: str) -> Optional[Feature]:
        if not isinstance(name, str):
            return None
        return self.by_name.get(normalize_name(name))

    def search(self, prefix: str) -> List[Feature]:
        """Features whose name starts with *prefix* (any case), sorted by name."""
        key = normalize_name(prefix)
        matches = [f for n, f in self.by_name.items() if n.startswith(key)]
        return sorted(matches, key=lambda f: normalize_name(f.name))

    def __len__(self) -> int:
        return len(self.by_id)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self.by_id


def build_index(features: Iterable[Feature]) -> LookupIndex:
    """Index *features* by id and by normalised name.

    Raises
    ------
    DuplicateIdError
        If two features share an id.
    """
    by_id: Dict[int, Feature] = {}
    by_name: Dict[str, Feature] = {}
    for position, feature in enumerate(features):
        if feature.id in by_id:
            raise DuplicateIdError(
                f"Duplicate feature id {feature.id} ({by_id[feature.id].name!r} "
                f"and {feature.name!r})",
                record=position, feature_id=feature.id,
            )
        by_id[feature.id] = feature
        by_name[normalize_name(feature.name)] = feature
    return LookupIndex(by_id=MappingProxyType(by_id), by_name=MappingProxyType(by_name))
