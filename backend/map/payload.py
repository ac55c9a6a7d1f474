"""Validated boundary for density responses

The proxy relays the engine body untouched; this module is where the client
side decides whether that body has the shape the map pipeline expects.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog

from backend.utils.exceptions import PayloadValidationError

logger = structlog.get_logger(__name__)

class GeometryKind(Enum):
    """Geometry kinds the engine sends for a search area"""
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"

@dataclass(frozen=True)
class RawGeometryEntry:
    """One search-area geometry with its encoded rings"""
    kind: GeometryKind
    rings: Tuple[Any, ...] = ()

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> Optional["RawGeometryEntry"]:
        """Build an entry from its wire form; unknown kinds give None"""
        if not isinstance(raw, dict):
            raise PayloadValidationError(f"Geometry entry must be an object, got {type(raw).__name__}")

        try:
            kind = GeometryKind(raw.get("type"))
        except ValueError:
            logger.debug("Ignoring geometry entry of unknown kind", kind=raw.get("type"))
            return None

        rings = raw.get("polyline")
        if rings is None:
            rings = []
        if not isinstance(rings, list):
            raise PayloadValidationError("Geometry 'polyline' must be a list of encoded strings")

        return cls(kind=kind, rings=tuple(rings))

@dataclass
class DensityPayload:
    """Density response after edge validation"""
    samples: List[Sequence[Any]] = field(default_factory=list)
    geometry: List[RawGeometryEntry] = field(default_factory=list)
    total: Optional[int] = None

def is_number(value: Any) -> bool:
    """True for ints and floats; bools are not coordinates"""
    return isinstance(value, (int, float)) and not isinstance(value, bool)

def _require_list(body: Dict[str, Any], key: str) -> list:
    value = body.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise PayloadValidationError(f"'{key}' must be a list, got {type(value).__name__}")
    return value

def parse_density_payload(body: Any) -> DensityPayload:
    """
    Validate a density response body

    Args:
        body: Decoded JSON from the density endpoint

    Returns:
        DensityPayload with typed geometry entries

    Raises:
        PayloadValidationError: If the body is not shaped like a density response
    """
    if not isinstance(body, dict):
        raise PayloadValidationError(f"Density response must be an object, got {type(body).__name__}")

    samples = _require_list(body, "data")
    for position, sample in enumerate(samples):
        if not isinstance(sample, (list, tuple)):
            raise PayloadValidationError(f"Density sample {position} must be an array")

    geometry = []
    for raw_entry in _require_list(body, "geometry"):
        entry = RawGeometryEntry.from_dict(raw_entry)
        if entry is not None:
            geometry.append(entry)

    total = body.get("total")
    if total is not None:
        if not is_number(total):
            raise PayloadValidationError("'total' must be a number")
        total = int(total)

    return DensityPayload(samples=samples, geometry=geometry, total=total)
