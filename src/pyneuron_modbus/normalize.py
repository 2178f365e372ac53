"""Parse and validate point id strings (DI1.3, DO2.1, ...)."""

import re

from .errors import InvalidPointError
from .types import PointId, PointPrefix

# Prefix + group + "." + index, 1-based decimals without leading zeros
_POINT_PATTERN = re.compile(r"^(DI|DO|AI|AO)([1-9]\d*)\.([1-9]\d*)$")


def parse_point(raw: "str | PointId") -> PointId:
    """
    Parse a point id string into a PointId.

    Accepts only the canonical form <PREFIX><group>.<index>: prefix DI, DO, AI
    or AO (case-insensitive), group and index 1-based without leading zeros.
    Surrounding whitespace is ignored. PointId instances pass through.

    Raises InvalidPointError for malformed ids.
    """
    if isinstance(raw, PointId):
        return raw
    if not isinstance(raw, str):
        raise InvalidPointError(repr(raw), f"Point id must be a string, got {type(raw).__name__}")

    s = raw.strip()
    if not s:
        raise InvalidPointError(raw, "Point id cannot be empty")

    m = _POINT_PATTERN.match(s.upper())
    if not m:
        raise InvalidPointError(raw, f"Malformed point id: {raw!r}")

    return PointId(PointPrefix(m.group(1)), int(m.group(2)), int(m.group(3)))


def normalize_point(raw: str) -> str:
    """Return the canonical text form of a point id (e.g. 'do1.3' -> 'DO1.3')."""
    return str(parse_point(raw))
