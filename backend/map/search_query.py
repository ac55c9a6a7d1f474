"""Search mode resolution for the density query

A density query is either scoped to named addresses (the default view) or
to a polygon the user drew. The two modes never share a request.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

# Ring sequence in [lng, lat] order, as drawn on the map
Rings = Sequence[Sequence[Sequence[float]]]

ADDRESS_KEYS = ("address_names", "addresses")
POLYGON_KEY = "polygon"

@dataclass(frozen=True)
class SearchDefaults:
    """Default search used when no polygon is drawn"""
    address_names: str
    address_ids: Union[str, Sequence[str]]
    country: str
    ad_type: str

@dataclass(frozen=True)
class NamedAddress:
    names: str
    ids: str
    country: str
    ad_type: str

@dataclass(frozen=True)
class DrawnPolygon:
    rings: Rings
    country: str
    ad_type: str

SearchMode = Union[NamedAddress, DrawnPolygon]

def _join_ids(ids: Union[str, Sequence[Any]]) -> str:
    if isinstance(ids, str):
        return ids
    return ",".join(str(i) for i in ids)

def resolve_search_mode(polygon: Optional[Rings], defaults: SearchDefaults) -> SearchMode:
    """Pick the search mode for the current draw state"""
    if polygon:
        return DrawnPolygon(rings=polygon, country=defaults.country, ad_type=defaults.ad_type)

    return NamedAddress(
        names=defaults.address_names,
        ids=_join_ids(defaults.address_ids),
        country=defaults.country,
        ad_type=defaults.ad_type,
    )

def serialize_rings(rings: Rings) -> str:
    """Compact JSON of the ring sequence as nested [lng, lat] arrays"""
    plain: List[List[List[float]]] = [[[float(point[0]), float(point[1])] for point in ring] for ring in rings]
    return json.dumps(plain, separators=(",", ":"))

def build_query_params(mode: SearchMode, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the outbound parameters for the density proxy

    Args:
        mode: Resolved search mode
        filters: Optional passthrough filters (price ranges, asset type...)

    Returns:
        Parameter dict holding exactly one of the address pair or ``polygon``
    """
    params = {
        key: value
        for key, value in (filters or {}).items()
        if key not in ADDRESS_KEYS and key != POLYGON_KEY and value is not None
    }

    if isinstance(mode, DrawnPolygon):
        params.update({
            "country": mode.country,
            "ad_type": mode.ad_type,
            POLYGON_KEY: serialize_rings(mode.rings),
        })
    elif isinstance(mode, NamedAddress):
        params.update({
            "address_names": mode.names,
            "addresses": mode.ids,
            "country": mode.country,
            "ad_type": mode.ad_type,
        })
    else:
        raise TypeError(f"Unknown search mode: {type(mode).__name__}")

    return params

def resolve_query_params(
    polygon: Optional[Rings],
    defaults: SearchDefaults,
    filters: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Shortcut: resolve the mode and build its parameters"""
    return build_query_params(resolve_search_mode(polygon, defaults), filters)
