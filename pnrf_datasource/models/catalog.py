from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple
import re

import pandas as pd

ORIGINAL_NAME_KEY = "original-name"
PNRF_GROUP_KEY = "pnrf-group"
PNRF_RECORDER_KEY = "pnrf-recorder"

FLOAT64 = "FLOAT64"

# Largest unit first; a period is labelled with the largest unit dividing it.
_PERIOD_UNITS: Tuple[Tuple[str, int], ...] = (
    ("min", 60_000_000_000),
    ("s", 1_000_000_000),
    ("ms", 1_000_000),
    ("us", 1_000),
    ("ns", 1),
)
_PERIOD_LABEL = re.compile(r"^(?P<value>\d+)_(?P<unit>min|s|ms|us|ns)$")


class ChannelKey(NamedTuple):
    """Composite identity of a channel inside a recording (original, unsanitized names)."""
    group: str
    recorder: str
    name: str


def format_sample_period(period_ns: int) -> str:
    """Compact label for a period in ticks, e.g. 20_000 -> '20_us'."""
    p = int(period_ns)
    if p <= 0:
        raise ValueError(f"sample period must be > 0, got {period_ns}")
    for unit, scale in _PERIOD_UNITS:
        if p % scale == 0:
            return f"{p // scale}_{unit}"
    raise AssertionError("unreachable")


def parse_sample_period(label: str) -> int:
    """Inverse of :func:`format_sample_period` (also accepts '1500_us' style labels)."""
    m = _PERIOD_LABEL.match(label.strip())
    if not m:
        raise ValueError(f"Not a sample period label: {label!r} (expected e.g. '20_us', '1_s')")
    scale = dict(_PERIOD_UNITS)[m.group("unit")]
    period = int(m.group("value")) * scale
    if period <= 0:
        raise ValueError(f"sample period must be > 0, got {label!r}")
    return period


@dataclass(frozen=True)
class Representation:
    """One sample-period variant of a resource. sample_period is in ns ticks."""
    sample_period: int
    data_type: str = FLOAT64

    @property
    def id(self) -> str:
        return format_sample_period(self.sample_period)


@dataclass(frozen=True)
class CatalogResource:
    """
    One logical channel of the catalog.

    properties holds the original channel/group/recorder names; the sanitized
    id cannot be mapped back to them.
    """
    id: str
    unit: Optional[str] = None
    groups: Tuple[str, ...] = ()
    properties: Dict[str, str] = field(default_factory=dict)
    representations: Tuple[Representation, ...] = ()

    @property
    def channel_key(self) -> ChannelKey:
        try:
            return ChannelKey(
                group=self.properties[PNRF_GROUP_KEY],
                recorder=self.properties[PNRF_RECORDER_KEY],
                name=self.properties[ORIGINAL_NAME_KEY],
            )
        except KeyError as e:
            raise KeyError(f"Resource '{self.id}' lacks channel property {e.args[0]!r}") from None

    def find_representation(self, sample_period: int) -> Representation:
        for r in self.representations:
            if r.sample_period == int(sample_period):
                return r
        raise KeyError(f"Resource '{self.id}' has no representation with period {format_sample_period(sample_period)}")

    def merge(self, other: "CatalogResource") -> "CatalogResource":
        """Combine with a later definition of the same id: last write wins, representations are unioned."""
        if other.id != self.id:
            raise ValueError(f"Cannot merge resources '{self.id}' and '{other.id}'")
        periods = {r.sample_period: r for r in self.representations}
        periods.update({r.sample_period: r for r in other.representations})
        return replace(
            self,
            unit=other.unit if other.unit is not None else self.unit,
            groups=other.groups or self.groups,
            properties={**self.properties, **other.properties},
            representations=tuple(periods[p] for p in sorted(periods)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "unit": self.unit,
            "groups": list(self.groups),
            "properties": dict(self.properties),
            "representations": [
                {"sample_period_ns": r.sample_period, "data_type": r.data_type}
                for r in self.representations
            ],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CatalogResource":
        return cls(
            id=str(d["id"]),
            unit=d.get("unit"),
            groups=tuple(d.get("groups") or ()),
            properties=dict(d.get("properties") or {}),
            representations=tuple(
                Representation(sample_period=int(r["sample_period_ns"]), data_type=r.get("data_type", FLOAT64))
                for r in d.get("representations") or ()
            ),
        )


@dataclass(frozen=True)
class CatalogRegistration:
    id: str
    title: Optional[str] = None


@dataclass(frozen=True)
class ResourceCatalog:
    """
    Filesystem-independent description of the channels offered by a data directory.

    Notes
    - resources keep insertion order (document order of the first file that defined them).
    - merge() is a union over resource ids; see CatalogResource.merge for conflicts.
    """
    id: str
    resources: Tuple[CatalogResource, ...] = ()

    def __post_init__(self) -> None:
        seen = set()
        for r in self.resources:
            if r.id in seen:
                raise ValueError(f"Duplicate resource id '{r.id}' in catalog '{self.id}'")
            seen.add(r.id)

    @property
    def resource_ids(self) -> List[str]:
        return [r.id for r in self.resources]

    def find(self, resource_id: str) -> CatalogResource:
        for r in self.resources:
            if r.id == resource_id:
                return r
        raise KeyError(f"No resource '{resource_id}' in catalog '{self.id}'")

    def merge(self, other: "ResourceCatalog") -> "ResourceCatalog":
        if other.id != self.id:
            raise ValueError(f"Cannot merge catalogs '{self.id}' and '{other.id}'")
        merged: Dict[str, CatalogResource] = {r.id: r for r in self.resources}
        for r in other.resources:
            prev = merged.get(r.id)
            merged[r.id] = r if prev is None else prev.merge(r)
        return ResourceCatalog(id=self.id, resources=tuple(merged.values()))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "resources": [r.to_dict() for r in self.resources]}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ResourceCatalog":
        return cls(id=str(d["id"]), resources=tuple(CatalogResource.from_dict(r) for r in d.get("resources") or ()))

    def to_dataframe(self) -> pd.DataFrame:
        """One row per (resource, representation)."""
        rows: List[Dict[str, Any]] = []
        for r in self.resources:
            for rep in r.representations:
                rows.append({
                    "id": r.id,
                    "representation": rep.id,
                    "sample_period_ns": rep.sample_period,
                    "data_type": rep.data_type,
                    "unit": r.unit,
                    "group": "; ".join(r.groups),
                    "original_name": r.properties.get(ORIGINAL_NAME_KEY),
                    "pnrf_group": r.properties.get(PNRF_GROUP_KEY),
                    "pnrf_recorder": r.properties.get(PNRF_RECORDER_KEY),
                })
        columns = [
            "id", "representation", "sample_period_ns", "data_type", "unit",
            "group", "original_name", "pnrf_group", "pnrf_recorder",
        ]
        return pd.DataFrame(rows, columns=columns)


def merge_catalogs(catalogs: Iterable[ResourceCatalog], catalog_id: str) -> ResourceCatalog:
    out = ResourceCatalog(id=catalog_id)
    for cat in catalogs:
        out = out.merge(cat)
    return out
