"""Map view sources, layers and camera effects

A map view is whatever renders the data (a web map, a Plotly figure).
Sources and layers are registered for the lifetime of a ``with`` block and
released on every exit path, including when the view has already been
torn down.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import structlog

from backend.utils.exceptions import MapViewClosedError
from backend.utils.geometry import Bounds, feature_collection_bounds

logger = structlog.get_logger(__name__)

GEOMETRY_SOURCE = "geometry-source"
GEOMETRY_FILL = "geometry-fill"
GEOMETRY_OUTLINE = "geometry-outline"

DENSITY_SOURCE = "density-source"
DENSITY_CLUSTERS = "density-clusters"

class MapView(ABC):
    """Rendering surface the map pipeline draws on"""

    @abstractmethod
    def get_source(self, source_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def add_source(self, source_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def set_source_data(self, source_id: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def remove_source(self, source_id: str) -> None:
        ...

    @abstractmethod
    def get_layer(self, layer_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def add_layer(self, layer: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def remove_layer(self, layer_id: str) -> None:
        ...

    @abstractmethod
    def fit_bounds(self, bounds: Bounds, padding: int, duration: int) -> None:
        ...

@dataclass(frozen=True)
class GeometryLayerStyle:
    fill_color: str = "#009de0"
    fill_opacity: float = 0.1
    line_color: str = "#009de0"
    line_width: float = 2

@dataclass(frozen=True)
class ClusterLayerStyle:
    cluster_radius: int = 50
    cluster_max_zoom: int = 20
    cluster_colors: tuple = ("#191C1F", "#191C1F", "#EBCB8B")
    cluster_thresholds: tuple = (100, 750)
    point_color: str = "#EBCB8B"

def _upsert_source(view: MapView, source_id: str, data: Dict[str, Any]) -> None:
    if view.get_source(source_id) is None:
        view.add_source(source_id, data)
    else:
        view.set_source_data(source_id, data)

def _add_layer_once(view: MapView, layer: Dict[str, Any]) -> None:
    if view.get_layer(layer["id"]) is None:
        view.add_layer(layer)

def _release(view: MapView, layer_ids: List[str], source_id: str) -> None:
    try:
        for layer_id in layer_ids:
            if view.get_layer(layer_id) is not None:
                view.remove_layer(layer_id)
        if view.get_source(source_id) is not None:
            view.remove_source(source_id)
    except MapViewClosedError:
        logger.debug("Map view already closed, nothing to release", source=source_id)

@contextmanager
def geometry_layer(view: MapView, geometry: Dict[str, Any],
                   style: GeometryLayerStyle = GeometryLayerStyle()) -> Iterator[MapView]:
    """Show a search-area outline while the block runs"""
    _upsert_source(view, GEOMETRY_SOURCE, geometry)
    try:
        _add_layer_once(view, {
            "id": GEOMETRY_FILL,
            "type": "fill",
            "source": GEOMETRY_SOURCE,
            "paint": {"fill-color": style.fill_color, "fill-opacity": style.fill_opacity},
        })
        _add_layer_once(view, {
            "id": GEOMETRY_OUTLINE,
            "type": "line",
            "source": GEOMETRY_SOURCE,
            "paint": {"line-color": style.line_color, "line-width": style.line_width},
        })
        yield view
    finally:
        _release(view, [GEOMETRY_OUTLINE, GEOMETRY_FILL], GEOMETRY_SOURCE)

@contextmanager
def cluster_layer(view: MapView, density: Dict[str, Any],
                  style: ClusterLayerStyle = ClusterLayerStyle()) -> Iterator[MapView]:
    """Show clustered density points while the block runs"""
    _upsert_source(view, DENSITY_SOURCE, density)
    try:
        _add_layer_once(view, {
            "id": DENSITY_CLUSTERS,
            "type": "cluster",
            "source": DENSITY_SOURCE,
            "cluster": {
                "radius": style.cluster_radius,
                "max_zoom": style.cluster_max_zoom,
                "colors": list(style.cluster_colors),
                "thresholds": list(style.cluster_thresholds),
            },
            "paint": {"point-color": style.point_color},
        })
        yield view
    finally:
        _release(view, [DENSITY_CLUSTERS], DENSITY_SOURCE)

def fit_to_data(view: MapView, density: Optional[Dict[str, Any]], geometry: Optional[Dict[str, Any]],
                padding: int = 50, duration: int = 1000) -> Optional[Bounds]:
    """
    Fit the camera to the search area, or to the points when there is none

    Fire and forget: returns the bounds used, or None when there was
    nothing to fit or the view is gone.
    """
    data = geometry if geometry and geometry.get("features") else density
    bounds = feature_collection_bounds(data)
    if bounds is None:
        return None

    try:
        view.fit_bounds(bounds, padding=padding, duration=duration)
    except MapViewClosedError:
        logger.debug("Map view closed before fit bounds")
        return None

    return bounds
