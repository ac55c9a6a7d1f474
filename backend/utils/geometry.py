"""Geometry utilities for map data"""

from typing import Dict, Iterator, List, Optional, Tuple
import math

from shapely.geometry import MultiPoint, shape

Bounds = Tuple[float, float, float, float]

def _feature_points(feature: Dict) -> Iterator[Tuple[float, float]]:
    geometry = feature.get("geometry") or {}
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []

    if geom_type == "Point":
        yield (coordinates[0], coordinates[1])
    elif geom_type == "Polygon":
        for ring in coordinates:
            for point in ring:
                yield (point[0], point[1])
    elif geom_type == "MultiPolygon":
        for polygon in coordinates:
            for ring in polygon:
                for point in ring:
                    yield (point[0], point[1])

def feature_collection_bounds(collection: Optional[Dict]) -> Optional[Bounds]:
    """
    Bounding box (min_lng, min_lat, max_lng, max_lat) of a feature collection

    Returns None for a missing or empty collection.
    """
    if not collection:
        return None

    points = [p for feature in collection.get("features", []) for p in _feature_points(feature)]
    if not points:
        return None

    return MultiPoint(points).bounds

def bounds_center(bounds: Bounds) -> Tuple[float, float]:
    """Center (lng, lat) of a bounding box"""
    min_lng, min_lat, max_lng, max_lat = bounds
    return ((min_lng + max_lng) / 2.0, (min_lat + max_lat) / 2.0)

def zoom_for_bounds(bounds: Bounds, max_zoom: float = 16.0) -> float:
    """Approximate web-mercator zoom level showing the whole bounding box"""
    min_lng, min_lat, max_lng, max_lat = bounds
    span = max(max_lng - min_lng, max_lat - min_lat)

    if span <= 0:
        return max_zoom

    return max(0.0, min(max_zoom, math.log2(360.0 / span)))

def polygon_area_km2(rings: List[List[Tuple[float, float]]]) -> float:
    """Approximate area of a drawn polygon's outer ring in square kilometres"""
    if not rings or len(rings[0]) < 4:
        return 0.0

    outer = shape({"type": "Polygon", "coordinates": [rings[0]]})
    lat = outer.centroid.y

    # Degrees to km near the polygon's latitude
    lat_to_km = 111.32
    lng_to_km = 111.32 * math.cos(math.radians(lat))

    return abs(outer.area) * lat_to_km * lng_to_km
