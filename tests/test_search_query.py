"""Tests for search mode resolution"""

import json

import pytest

from backend.map.search_query import (
    DrawnPolygon,
    NamedAddress,
    SearchDefaults,
    build_query_params,
    resolve_query_params,
    resolve_search_mode,
    serialize_rings,
)

def test_no_polygon_uses_named_addresses(defaults):
    mode = resolve_search_mode(None, defaults)
    assert mode == NamedAddress(names="Entroncamento", ids="101,102", country="pt", ad_type="sale")

def test_empty_polygon_counts_as_no_polygon(defaults):
    assert isinstance(resolve_search_mode([], defaults), NamedAddress)

def test_polygon_mode(defaults, search_ring):
    mode = resolve_search_mode([search_ring], defaults)
    assert mode == DrawnPolygon(rings=[search_ring], country="pt", ad_type="sale")

def test_named_address_params(defaults):
    assert resolve_query_params(None, defaults) == {
        "address_names": "Entroncamento",
        "addresses": "101,102",
        "country": "pt",
        "ad_type": "sale",
    }

def test_polygon_params(defaults, search_ring):
    params = resolve_query_params([search_ring], defaults)

    assert params["country"] == "pt"
    assert params["ad_type"] == "sale"
    assert json.loads(params["polygon"]) == [search_ring]
    assert "address_names" not in params
    assert "addresses" not in params

@pytest.mark.parametrize("polygon", [None, [], "ring"])
def test_modes_are_mutually_exclusive(defaults, search_ring, polygon):
    rings = [search_ring] if polygon == "ring" else polygon
    params = resolve_query_params(rings, defaults)

    has_address = "address_names" in params or "addresses" in params
    has_polygon = "polygon" in params
    assert has_address != has_polygon

def test_ids_string_passes_through():
    mode = resolve_search_mode(None, SearchDefaults("Lisboa", "7,8", "pt", "rent"))
    assert mode.ids == "7,8"
    assert mode.ad_type == "rent"

def test_serialize_rings_is_compact_lng_lat():
    assert serialize_rings([[(-8.5, 39.4), (-8.4, 39.4), (-8.4, 39.5), (-8.5, 39.4)]]) == (
        "[[[-8.5,39.4],[-8.4,39.4],[-8.4,39.5],[-8.5,39.4]]]"
    )

def test_filters_are_added(defaults):
    params = resolve_query_params(None, defaults, {"asset_type": "apartment", "min_price": 100000})
    assert params["asset_type"] == "apartment"
    assert params["min_price"] == 100000

def test_filters_cannot_change_the_mode(defaults, search_ring):
    filters = {"address_names": "Porto", "addresses": "9", "polygon": "[]", "country": "es"}

    named = resolve_query_params(None, defaults, filters)
    assert named["address_names"] == "Entroncamento"
    assert named["addresses"] == "101,102"
    assert named["country"] == "pt"
    assert "polygon" not in named

    drawn = resolve_query_params([search_ring], defaults, filters)
    assert "address_names" not in drawn
    assert "addresses" not in drawn
    assert json.loads(drawn["polygon"]) == [search_ring]

def test_none_filters_are_dropped(defaults):
    assert "max_price" not in resolve_query_params(None, defaults, {"max_price": None})

def test_unknown_mode_is_rejected():
    with pytest.raises(TypeError):
        build_query_params(object())
