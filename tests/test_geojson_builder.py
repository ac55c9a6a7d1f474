"""Tests for density and geometry GeoJSON builders"""

import math
import re

import pytest

from backend.map.geojson_builder import (
    build_density_geojson,
    build_geometry_geojson,
    format_price,
    normalize_density_samples,
)
from backend.map.payload import GeometryKind, RawGeometryEntry
from backend.map.polyline import encode

RING_A = [(39.4, -8.5), (39.4, -8.4), (39.5, -8.4), (39.4, -8.5)]
RING_B = [(38.7, -9.2), (38.7, -9.1), (38.8, -9.1), (38.7, -9.2)]

def swapped(ring):
    return [[lng, lat] for lat, lng in ring]

def build_one(sample):
    return build_density_geojson(normalize_density_samples([sample]))["features"]

# format_price

@pytest.mark.parametrize("price, label", [
    (0, "0"),
    (500, "500"),
    (999, "999"),
    (500.0, "500"),
    (1000, "1k"),
    (2500, "3k"),
    (2499, "2k"),
    (250000, "250k"),
    (999999, "1000k"),
    (1000000, "1.0M"),
    (1250000, "1.3M"),
    (2000000, "2.0M"),
    (12345678, "12.3M"),
])
def test_format_price(price, label):
    assert format_price(price) == label

# density

@pytest.mark.parametrize("price", [0, 50, 99])
def test_low_confidence_price_has_no_label(price):
    assert build_one([-8.5, 39.5, 1, price])[0]["properties"]["price"] == ""

@pytest.mark.parametrize("price", [100, 999])
def test_small_price_is_plain_integer(price):
    assert build_one([-8.5, 39.5, 1, price])[0]["properties"]["price"] == str(price)

@pytest.mark.parametrize("price", [1000, 999999])
def test_thousands_label(price):
    assert re.match(r"^\d+k$", build_one([-8.5, 39.5, 1, price])[0]["properties"]["price"])

@pytest.mark.parametrize("price", [1000000, 7250000, 150000000])
def test_millions_label(price):
    assert re.match(r"^\d+\.\dM$", build_one([-8.5, 39.5, 1, price])[0]["properties"]["price"])

def test_low_price_sample_keeps_id():
    assert build_one([-8.5, 39.5, 42, 50]) == [{
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [-8.5, 39.5]},
        "properties": {"id": "42", "price": ""},
    }]

@pytest.mark.parametrize("sample", [
    ["x", 39.5, 1, 500],
    [-8.5, None, 1, 500],
    [True, 39.5, 1, 500],
    [-8.5],
    [],
])
def test_sample_without_numeric_coordinates_is_dropped(sample):
    assert build_one(sample) == []

@pytest.mark.parametrize("price", [math.inf, -math.inf, math.nan])
def test_non_finite_price_has_no_label(price):
    samples = normalize_density_samples([[-8.5, 39.5, 1, price], [-8.4, 39.4, 2, 500]])
    features = build_density_geojson(samples)["features"]

    assert [f["properties"] for f in features] == [{"id": "1", "price": ""}, {"id": "2", "price": "500"}]

def test_format_price_of_infinity():
    assert format_price(math.inf) == ""

@pytest.mark.parametrize("sample", [[math.inf, 39.5, 1, 500], [-8.5, math.nan, 1, 500]])
def test_non_finite_coordinates_are_dropped(sample):
    assert build_one(sample) == []

def test_missing_id_and_price():
    assert build_one([-8.5, 39.5])[0]["properties"] == {"id": "", "price": ""}

def test_string_id_is_kept():
    assert build_one([-8.5, 39.5, "9f2c1e", 1500])[0]["properties"] == {"id": "9f2c1e", "price": "2k"}

def test_builder_checks_threshold_without_normalization():
    features = build_density_geojson([[-8.5, 39.5, 7, 99]])["features"]
    assert features[0]["properties"]["price"] == ""

def test_order_is_preserved_and_nothing_deduplicated():
    samples = [[-8.1, 39.1, 3, 100], ["?", 0, 9, 0], [-8.2, 39.2, 1, 100], [-8.1, 39.1, 3, 100]]
    ids = [f["properties"]["id"] for f in build_density_geojson(samples)["features"]]
    assert ids == ["3", "1", "3"]

def test_normalize_clamps_only_low_numeric_prices():
    samples = [[0, 0, 1, 99.5], [0, 0, 2, 100], [0, 0, 3, "n/a"], [0, 0, 4]]
    assert [s[3] if len(s) > 3 else None for s in normalize_density_samples(samples)] == [0, 100, "n/a", None]

def test_normalize_does_not_mutate_input():
    samples = [[-8.5, 39.5, 1, 10]]
    normalize_density_samples(samples)
    assert samples == [[-8.5, 39.5, 1, 10]]

# geometry

def test_polygon_uses_first_ring_only():
    entry = RawGeometryEntry(GeometryKind.POLYGON, (encode(RING_A), encode(RING_B)))
    collection = build_geometry_geojson([entry])

    assert collection["type"] == "FeatureCollection"
    assert collection["features"] == [{
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": [swapped(RING_A)]},
        "properties": {},
    }]

@pytest.mark.parametrize("rings", [(), ("",), (None,), ("_izlhA",)])
def test_polygon_without_usable_ring_is_skipped(rings):
    entry = RawGeometryEntry(GeometryKind.POLYGON, rings)
    assert build_geometry_geojson([entry])["features"] == []

def test_multipolygon_wraps_each_ring():
    entry = RawGeometryEntry(GeometryKind.MULTI_POLYGON, (encode(RING_A), encode(RING_B)))
    features = build_geometry_geojson([entry])["features"]

    assert len(features) == 1
    geometry = features[0]["geometry"]
    assert geometry["type"] == "MultiPolygon"
    assert len(geometry["coordinates"]) == 2
    assert geometry["coordinates"] == [[swapped(RING_A)], [swapped(RING_B)]]
    assert all(len(polygon) == 1 for polygon in geometry["coordinates"])
    assert features[0]["properties"] == {}

def test_multipolygon_skips_empty_rings():
    entry = RawGeometryEntry(GeometryKind.MULTI_POLYGON, ("", encode(RING_B)))
    geometry = build_geometry_geojson([entry])["features"][0]["geometry"]
    assert geometry["coordinates"] == [[swapped(RING_B)]]

def test_multipolygon_with_no_usable_rings_is_skipped():
    entry = RawGeometryEntry(GeometryKind.MULTI_POLYGON, ("", "!"))
    assert build_geometry_geojson([entry])["features"] == []

def test_mixed_entries_keep_order():
    entries = [
        RawGeometryEntry(GeometryKind.MULTI_POLYGON, (encode(RING_B),)),
        RawGeometryEntry(GeometryKind.POLYGON, ()),
        RawGeometryEntry(GeometryKind.POLYGON, (encode(RING_A),)),
    ]
    types = [f["geometry"]["type"] for f in build_geometry_geojson(entries)["features"]]
    assert types == ["MultiPolygon", "Polygon"]

def test_no_entries_gives_empty_collection():
    assert build_geometry_geojson([]) == {"type": "FeatureCollection", "features": []}
