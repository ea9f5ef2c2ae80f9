"""Channel naming: composite display names and catalog identifiers.

Identical short channel names recur across groups and recorders, so the
catalog identifier is built from all three levels. The identifier is lossy;
the original names are kept as resource properties for re-locating the
channel during reads.
"""

from __future__ import annotations

import re
from typing import Dict, Optional

# Applied in order; symbols first, separators last.
SYMBOL_SUBSTITUTIONS: Dict[str, str] = {
    "∑": "sum",     # N-ARY SUMMATION
    "Σ": "sum",     # GREEK CAPITAL SIGMA
    "φ": "phi",
    "ϕ": "phi",
    "λ": "lambda",
    "Δ": "delta",
    "µ": "u",       # MICRO SIGN
    "μ": "u",       # GREEK SMALL MU
    "Ω": "Ohm",
    "°": "deg",
    " ": "_",
    ".": "_",
}

VALID_ID = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")
_INVALID_ID_CHARS = re.compile(r"[^a-zA-Z0-9_]")
_INVALID_ID_START_CHARS = re.compile(r"^[^a-zA-Z]+")


def composite_channel_name(group: str, recorder: str, channel: str) -> str:
    """'<group>_<recorder>_<channel>' with the substitution table applied."""
    name = f"{group}_{recorder}_{channel}"
    for src, dst in SYMBOL_SUBSTITUTIONS.items():
        name = name.replace(src, dst)
    return name


def enforce_naming_convention(name: str) -> Optional[str]:
    """
    Turn a display name into a catalog-legal identifier.

    Strips characters outside [a-zA-Z0-9_], then strips leading characters
    that are not letters. Returns None if the result is still invalid
    (e.g. empty).
    """
    resource_id = _INVALID_ID_CHARS.sub("", name)
    resource_id = _INVALID_ID_START_CHARS.sub("", resource_id)
    if VALID_ID.match(resource_id) is None:
        return None
    return resource_id


def is_valid_id(resource_id: str) -> bool:
    return VALID_ID.match(resource_id) is not None
