"""Data source settings -- the persisted catalog descriptor.

SourceSettings bundles every value read from ``config.json`` in the data
source root. It can be:

- Loaded from disk with :func:`load_settings`
- Overridden field-by-field via ``dataclasses.replace()``
- Serialized to/from a dict for JSON
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pnrf_datasource.errors import ConfigurationError

SETTINGS_FILE_NAME = "config.json"

ORDER_BY_NAME = "name"
ORDER_BY_BEGIN = "begin"

# PascalCase keys of the original descriptor format
_KEY_ALIASES: Dict[str, str] = {
    "CatalogId": "catalog_id",
    "Title": "title",
    "DataDirectory": "data_directory",
    "GlobPattern": "glob_pattern",
    "CatalogSourceFiles": "catalog_source_files",
    "MinLoadConfidence": "min_load_confidence",
    "OrderBy": "order_by",
}


@dataclass(frozen=True)
class SourceSettings:
    """Frozen configuration of one PNRF data source.

    Required fields
    ---------------
    catalog_id : str
        Catalog identifier, e.g. ``/TEST/PNRF``.
    data_directory : str
        Directory searched for recordings, relative to the data source root.
    glob_pattern : str
        File pattern matched recursively below ``data_directory``, e.g. ``*.pnrf``.

    Optional fields
    ---------------
    title : str or None
        Human-readable catalog title.
    catalog_source_files : tuple of str or None
        Files (relative to the root) used to build the catalog instead of the
        first file found by the search.
    min_load_confidence : int
        Files whose decoder load confidence (0..100) is below this are dropped.
    order_by : str
        "name" (sorted paths, assumed chronological) or "begin" (sorted by the
        resolved begin time, opens every file).
    """

    catalog_id: str
    data_directory: str
    glob_pattern: str
    title: Optional[str] = None
    catalog_source_files: Optional[Tuple[str, ...]] = None
    min_load_confidence: int = 1
    order_by: str = ORDER_BY_NAME

    def __post_init__(self) -> None:
        if not self.catalog_id:
            raise ConfigurationError("catalog_id must not be empty")
        if not self.glob_pattern:
            raise ConfigurationError("glob_pattern must not be empty")
        if self.order_by not in (ORDER_BY_NAME, ORDER_BY_BEGIN):
            raise ConfigurationError(f"order_by must be '{ORDER_BY_NAME}' or '{ORDER_BY_BEGIN}', got {self.order_by!r}")
        if not 0 <= int(self.min_load_confidence) <= 100:
            raise ConfigurationError(f"min_load_confidence must be in [0, 100], got {self.min_load_confidence}")

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        if d["catalog_source_files"] is not None:
            d["catalog_source_files"] = list(d["catalog_source_files"])
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceSettings":
        if not isinstance(d, dict):
            raise ConfigurationError(f"Settings must be a JSON object, got {type(d).__name__}")
        norm = {_KEY_ALIASES.get(k, k): v for k, v in d.items()}
        unknown = set(norm) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown settings keys: {sorted(unknown)}")
        for key in ("catalog_id", "data_directory", "glob_pattern"):
            if norm.get(key) is None:
                raise ConfigurationError(f"Missing required settings key '{key}'")
        files = norm.get("catalog_source_files")
        if files is not None:
            if isinstance(files, str) or not all(isinstance(f, str) for f in files if f is not None):
                raise ConfigurationError("catalog_source_files must be a list of paths")
            norm["catalog_source_files"] = tuple(f for f in files if f is not None)
        try:
            norm["min_load_confidence"] = int(norm.get("min_load_confidence", 1))
        except (TypeError, ValueError):
            raise ConfigurationError(f"min_load_confidence must be an integer, got {norm.get('min_load_confidence')!r}") from None
        return cls(**norm)


def load_settings(path: str | Path) -> SourceSettings:
    p = Path(path)
    if not p.is_file():
        raise ConfigurationError(f"Configuration file {p} not found.")
    try:
        d = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Configuration file {p} could not be parsed: {e}") from e
    return SourceSettings.from_dict(d)


def save_settings(settings: SourceSettings, path: str | Path) -> Path:
    p = Path(path)
    p.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    return p
