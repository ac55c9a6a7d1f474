"""Listing popup content for the density dashboard"""

from typing import Any, Dict, Optional

import streamlit as st

from backend.map.fetch import SelectedPoint

def listing_summary(details: Optional[Dict[str, Any]], fallback_price: str) -> Dict[str, Any]:
    """Pick the fields the popup shows, falling back to the point's own price label"""
    details = details or {}
    images = details.get("images") or []
    coordinates = details.get("coordinates")

    directions_url = None
    if coordinates:
        directions_url = (
            "https://www.google.com/maps/dir/?api=1"
            f"&destination={coordinates[1]},{coordinates[0]}"
        )

    return {
        "image": images[0] if images else details.get("image"),
        "title": details.get("title") or details.get("address") or "Property",
        "price": details.get("price") or fallback_price,
        "url": details.get("url") or details.get("link"),
        "asset_type": details.get("asset_type"),
        "bedrooms": details.get("bedrooms"),
        "bathrooms": details.get("bathrooms"),
        "area": details.get("area"),
        "directions_url": directions_url,
    }

def render_property_popup(selected: SelectedPoint) -> None:
    """Render the selected listing in the sidebar"""
    if selected.loading:
        st.info("Loading property details...")
        return

    if selected.error:
        st.error("Failed to load property details")
        st.caption(selected.error)
        return

    summary = listing_summary(selected.details, selected.fallback_price)

    if summary["image"]:
        st.image(summary["image"], caption=summary["price"] or None)

    if summary["asset_type"]:
        st.caption(str(summary["asset_type"]).upper())
    st.subheader(summary["title"])

    if summary["price"]:
        st.metric("Price", summary["price"])

    features = []
    if summary["bedrooms"]:
        features.append(f"🛏 {summary['bedrooms']}")
    if summary["bathrooms"]:
        features.append(f"🛁 {summary['bathrooms']}")
    if summary["area"]:
        features.append(f"📐 {summary['area']} m²")
    if features:
        st.write("  ".join(features))

    if summary["url"]:
        st.link_button("View Listing", summary["url"])
    if summary["directions_url"]:
        st.link_button("Directions", summary["directions_url"])
