"""Density Map Streamlit Dashboard"""

import atexit
import json
import os
import sys
from contextlib import ExitStack

import pandas as pd
import streamlit as st

# Add project to path when launched with `streamlit run`
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backend.config.settings import Settings
from backend.map.draw_state import DrawMode, DrawStateMachine
from backend.map.fetch import FetchOrchestrator, MapContext
from backend.map.layers import cluster_layer, fit_to_data, geometry_layer
from backend.utils.exceptions import DrawStateError
from backend.utils.geometry import polygon_area_km2
from frontend.api_client import MapApiClient
from frontend.components.map_figure import FigureMapView, fresh_click, point_click
from frontend.components.property_popup import render_property_popup

# Page configuration
st.set_page_config(
    page_title="Density Map",
    page_icon="🗺️",
    layout="wide",
    initial_sidebar_state="expanded"
)

WAIT_TIMEOUT = 60

@st.cache_resource
def get_map_context() -> MapContext:
    """One context per process, closed at exit"""
    settings = Settings()
    api = MapApiClient(settings.MAP_API_URL, timeout=settings.CLIENT_TIMEOUT)
    context = MapContext(api, settings.default_search, detail_ttl_seconds=settings.DETAIL_CACHE_TTL)
    atexit.register(context.close)
    return context

def get_session():
    """Draw state and orchestrator for this browser session"""
    if "orchestrator" not in st.session_state:
        draw = DrawStateMachine()
        orchestrator = FetchOrchestrator(get_map_context(), draw)
        orchestrator.refresh()
        st.session_state.draw = draw
        st.session_state.orchestrator = orchestrator
    return st.session_state.draw, st.session_state.orchestrator

def wait_for(future, message: str):
    if future is None or future.done():
        return
    with st.spinner(message):
        try:
            future.result(timeout=WAIT_TIMEOUT)
        except Exception as e:
            st.error(f"{message.rstrip('.')} failed: {e}")

def parse_rings(text: str):
    """Rings pasted as JSON: [[[lng, lat], ...]] or a single ring"""
    rings = json.loads(text)
    if rings and isinstance(rings[0][0], (int, float)):
        rings = [rings]
    return rings

def render_draw_controls(draw: DrawStateMachine, orchestrator: FetchOrchestrator):
    """Sidebar draw controls"""
    st.sidebar.title("✏️ Search Area")

    try:
        if draw.mode in (DrawMode.IDLE, DrawMode.COMPLETE):
            if st.sidebar.button("Draw polygon", key="draw_start"):
                draw.start()
                st.rerun()

        if draw.mode == DrawMode.DRAWING:
            col1, col2 = st.sidebar.columns(2)
            lng = col1.number_input("Longitude", value=-8.47, format="%.6f", key="vertex_lng")
            lat = col2.number_input("Latitude", value=39.46, format="%.6f", key="vertex_lat")
            if st.sidebar.button("Add vertex", key="draw_vertex"):
                draw.add_vertex(lng, lat)
                st.rerun()

            st.sidebar.caption(f"{len(draw.vertices)} vertices placed")
            pasted = st.sidebar.text_area("...or paste rings as JSON", key="draw_json")

            col1, col2 = st.sidebar.columns(2)
            if col1.button("Finish", key="draw_finish"):
                draw.finish(parse_rings(pasted) if pasted.strip() else None)
                st.rerun()
            if col2.button("Cancel", key="draw_cancel"):
                draw.cancel()
                st.rerun()

        if draw.mode == DrawMode.COMPLETE:
            area = polygon_area_km2([list(ring) for ring in draw.current_polygon])
            st.sidebar.caption(f"Search area: {area:.2f} km²")
            if st.sidebar.button("Clear drawing", key="draw_clear"):
                draw.clear()
                st.rerun()

        # Reset to the default named address search
        if draw.has_polygon and draw.mode == DrawMode.COMPLETE:
            if st.sidebar.button(f"↺ {orchestrator.context.defaults.address_names}", key="reset"):
                orchestrator.clear_selection()
                draw.clear()
                st.rerun()
    except (DrawStateError, ValueError, IndexError, TypeError) as e:
        st.sidebar.error(f"Drawing failed: {e}")

def render_map(draw: DrawStateMachine, orchestrator: FetchOrchestrator):
    """Map with search area and clustered points"""
    data = orchestrator.map_data
    view = FigureMapView()

    with ExitStack() as layers:
        if data.geometry["features"]:
            layers.enter_context(geometry_layer(view, data.geometry))
        if data.density["features"]:
            layers.enter_context(cluster_layer(view, data.density))
        fit_to_data(view, data.density, data.geometry)
        fig = view.to_figure(draft=draw.vertices)

    return st.plotly_chart(fig, use_container_width=True, key="density_map",
                           on_select="rerun", selection_mode="points")

def handle_selection(event, orchestrator: FetchOrchestrator):
    points = event.selection.points if event and event.selection else []
    click = fresh_click(points, st.session_state.get("handled_click"))
    st.session_state.handled_click = point_click(points)
    if click is None:
        return

    wait_for(orchestrator.select_point(click["id"], (click["lon"], click["lat"]), click["price"]),
             "Loading property details...")

def main():
    """Main application"""
    draw, orchestrator = get_session()

    render_draw_controls(draw, orchestrator)
    wait_for(orchestrator.pending, "Loading map data...")

    st.title("🗺️ Density Map")
    data = orchestrator.map_data

    col1, col2, col3 = st.columns(3)
    col1.metric("Listings", data.total if data.total is not None else len(data.density["features"]))
    col2.metric("Points shown", len(data.density["features"]))
    col3.metric("Search", "Drawn polygon" if draw.has_polygon else orchestrator.context.defaults.address_names)

    if orchestrator.error:
        st.error(f"Failed to load map data: {orchestrator.error}")

    event = render_map(draw, orchestrator)
    handle_selection(event, orchestrator)

    if orchestrator.selected is not None:
        st.sidebar.markdown("---")
        st.sidebar.title("🏠 Listing")
        with st.sidebar:
            render_property_popup(orchestrator.selected)
        if st.sidebar.button("Close", key="popup_close"):
            orchestrator.clear_selection()
            st.rerun()

    with st.expander("Points"):
        st.dataframe(pd.DataFrame([
            {
                "id": f["properties"]["id"],
                "longitude": f["geometry"]["coordinates"][0],
                "latitude": f["geometry"]["coordinates"][1],
                "price": f["properties"]["price"],
            }
            for f in data.density["features"]
        ]))

    st.sidebar.markdown("---")
    st.sidebar.caption("Density Map dashboard")

if __name__ == "__main__":
    main()
