"""Plotly map view for the density dashboard"""

import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import plotly.graph_objects as go

from backend.map.layers import MapView
from backend.utils.exceptions import MapViewClosedError
from backend.utils.geometry import Bounds, bounds_center, zoom_for_bounds

DEFAULT_CENTER = (-8.22, 39.39)
DEFAULT_ZOOM = 6
MAP_HEIGHT = 500

# Cluster marker diameters per step, relative to the cluster radius
CLUSTER_SIZE_FACTORS = (0.4, 0.6, 0.8)

def _rgba(hex_color: str, opacity: float) -> str:
    hex_color = hex_color.lstrip("#")
    red, green, blue = (int(hex_color[i:i + 2], 16) for i in (0, 2, 4))
    return f"rgba({red},{green},{blue},{opacity})"

def _polygon_rings(collection: Dict[str, Any]) -> List[Sequence[Sequence[float]]]:
    rings = []
    for feature in collection.get("features", []):
        geometry = feature.get("geometry") or {}
        if geometry.get("type") == "Polygon":
            rings.extend(geometry["coordinates"])
        elif geometry.get("type") == "MultiPolygon":
            for polygon in geometry["coordinates"]:
                rings.extend(polygon)
    return rings

def _ring_lines(rings) -> Tuple[List[Optional[float]], List[Optional[float]]]:
    """Flatten rings into lon/lat lists separated by None breaks"""
    lons, lats = [], []
    for ring in rings:
        lons.extend(point[0] for point in ring)
        lats.extend(point[1] for point in ring)
        lons.append(None)
        lats.append(None)
    return lons, lats

def point_click(points) -> Optional[Dict[str, Any]]:
    """First clicked density point in a chart selection, or None"""
    clicked = next((p for p in points or [] if p.get("customdata")), None)
    if clicked is None:
        return None

    return {
        "id": str(clicked["customdata"][0]),
        "price": clicked["customdata"][1],
        "lon": clicked["lon"],
        "lat": clicked["lat"],
    }

def fresh_click(points, handled: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    The clicked point, unless it is the click already acted on

    Chart selections persist across reruns; comparing with the last handled
    click keeps a closed popup from reopening for the same point.
    """
    click = point_click(points)
    if click is None or click == handled:
        return None
    return click

class FigureMapView(MapView):
    """Map view that keeps sources and layers and renders them with Plotly"""

    def __init__(self, center: Tuple[float, float] = DEFAULT_CENTER, zoom: float = DEFAULT_ZOOM,
                 style: str = "open-street-map", height: int = MAP_HEIGHT):
        self.center = center
        self.zoom = zoom
        self.style = style
        self.height = height
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.layers: Dict[str, Dict[str, Any]] = {}
        self.closed = False

    def close(self) -> None:
        self.closed = True
        self.sources.clear()
        self.layers.clear()

    def _check_open(self) -> None:
        if self.closed:
            raise MapViewClosedError("Map view has been closed")

    def get_source(self, source_id):
        self._check_open()
        return self.sources.get(source_id)

    def add_source(self, source_id, data):
        self._check_open()
        self.sources[source_id] = data

    def set_source_data(self, source_id, data):
        self._check_open()
        self.sources[source_id] = data

    def remove_source(self, source_id):
        self._check_open()
        self.sources.pop(source_id, None)

    def get_layer(self, layer_id):
        self._check_open()
        return self.layers.get(layer_id)

    def add_layer(self, layer):
        self._check_open()
        self.layers[layer["id"]] = layer

    def remove_layer(self, layer_id):
        self._check_open()
        self.layers.pop(layer_id, None)

    def fit_bounds(self, bounds: Bounds, padding: int = 50, duration: int = 1000) -> None:
        # Plotly has no camera animation; duration only matters to web maps
        self._check_open()
        padding_zoom = math.log2(1 + 2 * padding / self.height)
        self.center = bounds_center(bounds)
        self.zoom = max(0.0, zoom_for_bounds(bounds) - padding_zoom)

    def _fill_trace(self, layer, data) -> go.Scattermap:
        lons, lats = _ring_lines(_polygon_rings(data))
        paint = layer["paint"]
        return go.Scattermap(
            lon=lons, lat=lats, mode="lines", fill="toself",
            fillcolor=_rgba(paint["fill-color"], paint["fill-opacity"]),
            line=dict(width=0), hoverinfo="skip", name=layer["id"],
        )

    def _line_trace(self, layer, data) -> go.Scattermap:
        lons, lats = _ring_lines(_polygon_rings(data))
        paint = layer["paint"]
        return go.Scattermap(
            lon=lons, lat=lats, mode="lines",
            line=dict(color=paint["line-color"], width=paint["line-width"]),
            hoverinfo="skip", name=layer["id"],
        )

    def _cluster_trace(self, layer, data) -> go.Scattermap:
        features = data.get("features", [])
        cluster = layer["cluster"]
        return go.Scattermap(
            lon=[f["geometry"]["coordinates"][0] for f in features],
            lat=[f["geometry"]["coordinates"][1] for f in features],
            mode="markers",
            marker=dict(size=10, color=layer["paint"]["point-color"]),
            customdata=[[f["properties"]["id"], f["properties"]["price"]] for f in features],
            hovertemplate="%{customdata[1]}<extra></extra>",
            cluster=dict(
                enabled=True,
                maxzoom=cluster["max_zoom"],
                step=[1] + cluster["thresholds"],
                color=cluster["colors"],
                size=[round(cluster["radius"] * factor) for factor in CLUSTER_SIZE_FACTORS],
            ),
            name=layer["id"],
        )

    def to_figure(self, draft: Sequence[Tuple[float, float]] = ()) -> go.Figure:
        """Render registered layers, plus the shape being drawn if any"""
        self._check_open()
        builders = {
            "fill": self._fill_trace,
            "line": self._line_trace,
            "cluster": self._cluster_trace,
        }

        fig = go.Figure()
        for layer in self.layers.values():
            data = self.sources.get(layer["source"])
            builder = builders.get(layer["type"])
            if data is None or builder is None:
                continue
            fig.add_trace(builder(layer, data))

        if draft:
            fig.add_trace(go.Scattermap(
                lon=[p[0] for p in draft], lat=[p[1] for p in draft],
                mode="lines+markers", line=dict(color="#d9480f", width=2),
                marker=dict(size=8, color="#d9480f"), hoverinfo="skip", name="draft",
            ))

        fig.update_layout(
            map=dict(style=self.style, center=dict(lon=self.center[0], lat=self.center[1]), zoom=self.zoom),
            margin=dict(l=0, r=0, t=0, b=0),
            height=self.height,
            showlegend=False,
        )
        return fig
