"""Encoded polyline codec

Implements the signed varint delta encoding used by the search engine for
search-area geometry. Each coordinate is stored as the difference from the
previous one, scaled by ``10 ** precision``, zig-zag encoded and split into
5-bit chunks offset by 63.
"""

from typing import Iterable, List, Tuple

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_PRECISION = 6

_CHUNK_OFFSET = 63
_CONTINUATION = 0x20
_CHUNK_MASK = 0x1F

LatLng = Tuple[float, float]

class _MalformedPolyline(ValueError):
    pass

def _read_value(expression: str, index: int) -> Tuple[int, int]:
    """Read one zig-zag value starting at ``index``, return (value, next index)"""
    result = 0
    shift = 0

    while True:
        if index >= len(expression):
            raise _MalformedPolyline("truncated chunk")

        chunk = ord(expression[index]) - _CHUNK_OFFSET
        index += 1

        if chunk < 0 or chunk > 63:
            raise _MalformedPolyline(f"invalid character at {index - 1}")

        result |= (chunk & _CHUNK_MASK) << shift
        shift += 5

        if chunk < _CONTINUATION:
            break

    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index

def decode(expression: str, precision: int = DEFAULT_PRECISION) -> List[LatLng]:
    """
    Decode a polyline string into (latitude, longitude) pairs

    Args:
        expression: Encoded polyline
        precision: Number of decimal digits encoded per coordinate

    Returns:
        Ordered list of (latitude, longitude). Empty for empty or malformed
        input; the caller treats that as "no geometry".
    """
    if not isinstance(expression, str) or not expression:
        return []

    factor = 10 ** precision
    coordinates = []
    index = 0
    lat = 0
    lng = 0

    try:
        while index < len(expression):
            delta_lat, index = _read_value(expression, index)
            delta_lng, index = _read_value(expression, index)
            lat += delta_lat
            lng += delta_lng
            coordinates.append((lat / factor, lng / factor))
    except _MalformedPolyline as e:
        logger.debug("Discarding malformed polyline", reason=str(e), length=len(expression))
        return []

    return coordinates

def _write_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []

    while value >= _CONTINUATION:
        chunks.append(chr((_CONTINUATION | (value & _CHUNK_MASK)) + _CHUNK_OFFSET))
        value >>= 5

    chunks.append(chr(value + _CHUNK_OFFSET))
    return "".join(chunks)

def encode(coordinates: Iterable[LatLng], precision: int = DEFAULT_PRECISION) -> str:
    """Encode (latitude, longitude) pairs, the inverse of :func:`decode`"""
    factor = 10 ** precision
    output = []
    prev_lat = 0
    prev_lng = 0

    for lat, lng in coordinates:
        lat_units = int(round(lat * factor))
        lng_units = int(round(lng * factor))
        output.append(_write_value(lat_units - prev_lat))
        output.append(_write_value(lng_units - prev_lng))
        prev_lat = lat_units
        prev_lng = lng_units

    return "".join(output)
