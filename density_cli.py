#!/usr/bin/env python3
"""Density Map command line interface"""

import argparse
import json
import sys
from typing import Dict, List, Optional
from tabulate import tabulate

from backend.config.settings import Settings
from backend.map.geojson_builder import (
    build_density_geojson,
    build_geometry_geojson,
    normalize_density_samples,
)
from backend.map.payload import parse_density_payload
from backend.map.polyline import DEFAULT_PRECISION, decode, encode
from backend.map.search_query import resolve_query_params
from backend.utils.exceptions import DensityMapException
from backend.utils.geometry import feature_collection_bounds, polygon_area_km2
from frontend.api_client import MapApiClient

class DensityCli:
    """Command line interface for the density map API"""

    def __init__(self, api_url: str, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.client = MapApiClient(api_url, timeout=self.settings.CLIENT_TIMEOUT)

    def density(self, polygon_file: Optional[str] = None, filters: Optional[Dict[str, str]] = None,
                limit: int = 20) -> None:
        """Query density for the default address or a polygon file"""
        polygon = None
        if polygon_file:
            with open(polygon_file) as f:
                polygon = json.load(f)
            print(f"📐 Polygon search: {polygon_area_km2(polygon):.2f} km²\n")
        else:
            print(f"📍 Address search: {self.settings.DEFAULT_ADDRESS_NAMES}\n")

        params = resolve_query_params(polygon, self.settings.default_search, filters)
        payload = parse_density_payload(self.client.fetch_density(params))

        density = build_density_geojson(normalize_density_samples(payload.samples))
        geometry = build_geometry_geojson(payload.geometry)

        features = density["features"]
        rows = [
            [f["properties"]["id"], f["geometry"]["coordinates"][0],
             f["geometry"]["coordinates"][1], f["properties"]["price"] or "-"]
            for f in features[:limit]
        ]
        print(tabulate(rows, headers=["ID", "Longitude", "Latitude", "Price"], tablefmt="simple"))

        print(f"\n📊 {len(features)} points", end="")
        if payload.total is not None:
            print(f" of {payload.total} listings", end="")
        print()

        bounds = feature_collection_bounds(geometry) or feature_collection_bounds(density)
        print(f"🗺️  {len(geometry['features'])} search-area shapes")
        if bounds:
            print("  Bounds: " + ", ".join(f"{value:.5f}" for value in bounds))

    def listing(self, platform_hash: str) -> None:
        """Show one listing"""
        details = self.client.fetch_listing(platform_hash)
        rows = [[key, value] for key, value in details.items() if not isinstance(value, (list, dict))]
        print(tabulate(rows, headers=["Field", "Value"], tablefmt="simple"))

def decode_command(polyline: str, precision: int) -> None:
    points = decode(polyline, precision)
    if not points:
        print("❌ Empty or malformed polyline")
        return
    print(tabulate([[lng, lat] for lat, lng in points], headers=["Longitude", "Latitude"], floatfmt=f".{precision}f"))

def encode_command(points: List[str], precision: int) -> None:
    coordinates = []
    for point in points:
        lng, lat = (float(value) for value in point.split(","))
        coordinates.append((lat, lng))
    print(encode(coordinates, precision))

def parse_filters(values: List[str]) -> Dict[str, str]:
    filters = {}
    for value in values:
        key, sep, item = value.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"Filter must be key=value: {value}")
        filters[key] = item
    return filters

def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    settings = Settings()

    parser = argparse.ArgumentParser(
        description="Density Map command line interface",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  density_cli.py density
  density_cli.py density --polygon area.json --filter asset_type=apartment
  density_cli.py listing 9f2c1e
  density_cli.py decode '_izlhA~rlgdF_{geC~ywl@'
  density_cli.py encode -- -8.5,39.5 -8.4,39.6
        """
    )

    parser.add_argument(
        "--api-url",
        default=settings.MAP_API_URL,
        help=f"API base URL (default: {settings.MAP_API_URL})"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    density_parser = subparsers.add_parser("density", help="Query density points")
    density_parser.add_argument("--polygon", help="JSON file with rings of [lng, lat] pairs")
    density_parser.add_argument("--filter", action="append", default=[],
                                help="Passthrough filter as key=value (repeatable)")
    density_parser.add_argument("--limit", type=int, default=20, help="Rows to print")

    listing_parser = subparsers.add_parser("listing", help="Show one listing")
    listing_parser.add_argument("platform_hash", help="Listing identifier")

    decode_parser = subparsers.add_parser("decode", help="Decode an encoded polyline")
    decode_parser.add_argument("polyline", help="Encoded polyline")
    decode_parser.add_argument("--precision", type=int, default=DEFAULT_PRECISION)

    encode_parser = subparsers.add_parser("encode", help="Encode lng,lat points")
    encode_parser.add_argument("points", nargs="+", help="Points as lng,lat")
    encode_parser.add_argument("--precision", type=int, default=DEFAULT_PRECISION)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "decode":
        decode_command(args.polyline, args.precision)
        return 0
    if args.command == "encode":
        encode_command(args.points, args.precision)
        return 0

    cli = DensityCli(args.api_url, settings)
    try:
        if args.command == "density":
            cli.density(args.polygon, parse_filters(args.filter), args.limit)
        elif args.command == "listing":
            cli.listing(args.platform_hash)
    except (DensityMapException, argparse.ArgumentTypeError, OSError, ValueError) as e:
        print(f"❌ Error: {str(e)}")
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
