"""GeoJSON builders for the density map

Turns a validated density payload into the two feature collections the map
renders: clustered listing points and the search-area outline.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Sequence

from backend.map.payload import GeometryKind, RawGeometryEntry, is_number
from backend.map.polyline import DEFAULT_PRECISION, decode

# Prices below this are treated as low-confidence and never labelled
PRICE_CONFIDENCE_THRESHOLD = 100

def empty_feature_collection() -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": []}

def _plain_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)

def _round_half_up(value: Decimal, places: str) -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)

def _finite(value: Any) -> bool:
    return is_number(value) and (isinstance(value, int) or math.isfinite(value))

def format_price(price: float) -> str:
    """Short price label: 500, 3k, 1.3M; empty for infinite or NaN prices"""
    if isinstance(price, float) and not math.isfinite(price):
        return ""
    if price < 1000:
        return _plain_number(price)

    amount = Decimal(str(price))
    if price < 1000000:
        return f"{_round_half_up(amount / 1000, '1')}k"
    return f"{_round_half_up(amount / 1000000, '0.1')}M"

def normalize_density_samples(samples: Iterable[Sequence[Any]]) -> List[List[Any]]:
    """Zero out prices under the confidence threshold; 0 means "no price"."""
    normalized = []
    for sample in samples:
        sample = list(sample)
        if len(sample) > 3 and is_number(sample[3]) and sample[3] < PRICE_CONFIDENCE_THRESHOLD:
            sample[3] = 0
        normalized.append(sample)
    return normalized

def build_density_geojson(samples: Iterable[Sequence[Any]]) -> Dict[str, Any]:
    """
    Build point features from density samples

    Samples are ``[longitude, latitude, id?, price?]``. Samples without finite
    numeric coordinates are dropped; order is otherwise preserved.
    """
    features = []

    for sample in samples:
        if len(sample) < 2 or not _finite(sample[0]) or not _finite(sample[1]):
            continue

        lng, lat = sample[0], sample[1]
        raw_id = sample[2] if len(sample) > 2 else None
        price = sample[3] if len(sample) > 3 else None

        features.append({
            "type": "Feature",
            "geometry": {
                "type": "Point",
                "coordinates": [lng, lat],
            },
            "properties": {
                "id": _plain_number(raw_id) if raw_id else "",
                "price": format_price(price) if _finite(price) and price >= PRICE_CONFIDENCE_THRESHOLD else "",
            },
        })

    return {"type": "FeatureCollection", "features": features}

def _decode_ring(encoded: Any) -> List[List[float]]:
    # Decoder yields (lat, lng); GeoJSON wants [lng, lat]
    return [[lng, lat] for lat, lng in decode(encoded, DEFAULT_PRECISION)]

def _polygon_feature(entry: RawGeometryEntry):
    if not entry.rings:
        return None
    ring = _decode_ring(entry.rings[0])
    if not ring:
        return None
    return {"type": "Polygon", "coordinates": [ring]}

def _multipolygon_feature(entry: RawGeometryEntry):
    polygons = [[ring] for ring in map(_decode_ring, entry.rings) if ring]
    if not polygons:
        return None
    return {"type": "MultiPolygon", "coordinates": polygons}

_GEOMETRY_BUILDERS = {
    GeometryKind.POLYGON: _polygon_feature,
    GeometryKind.MULTI_POLYGON: _multipolygon_feature,
}

def build_geometry_geojson(entries: Iterable[RawGeometryEntry]) -> Dict[str, Any]:
    """Build Polygon/MultiPolygon features from encoded search-area geometry"""
    features = []

    for entry in entries:
        builder = _GEOMETRY_BUILDERS.get(entry.kind)
        if builder is None:
            continue

        geometry = builder(entry)
        if geometry is None:
            continue

        features.append({
            "type": "Feature",
            "geometry": geometry,
            "properties": {},
        })

    return {"type": "FeatureCollection", "features": features}
