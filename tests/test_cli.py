"""Tests for the command line interface"""

import argparse
import json

import pytest

import density_cli
from backend.utils.exceptions import MapApiError

class FakeClient:
    def __init__(self, density=None, listing=None, error=None):
        self.density_body = density
        self.listing_body = listing
        self.error = error
        self.params = None

    def fetch_density(self, params):
        self.params = params
        return self.density_body

    def fetch_listing(self, platform_hash):
        if self.error is not None:
            raise self.error
        return self.listing_body

@pytest.fixture
def cli(monkeypatch):
    monkeypatch.setenv("DEFAULT_ADDRESS_NAMES", "Entroncamento")
    monkeypatch.setenv("DEFAULT_ADDRESS_IDS", "101")
    return density_cli.DensityCli("http://proxy.test/api")

def test_decode(capsys):
    assert density_cli.main(["decode", "_izlhA~rlgdF_{geC~ywl@"]) == 0

    out = capsys.readouterr().out
    assert "-120.200000" in out
    assert "38.500000" in out
    assert "40.700000" in out

def test_decode_malformed(capsys):
    assert density_cli.main(["decode", "_izlhA"]) == 0
    assert "malformed" in capsys.readouterr().out

def test_encode(capsys):
    assert density_cli.main(["encode", "--", "-120.2,38.5", "-120.95,40.7"]) == 0
    assert capsys.readouterr().out.strip() == "_izlhA~rlgdF_{geC~ywl@"

def test_no_command(capsys):
    assert density_cli.main([]) == 1

def test_parse_filters():
    assert density_cli.parse_filters(["asset_type=apartment", "min_price=1000"]) == {
        "asset_type": "apartment",
        "min_price": "1000",
    }

def test_parse_filters_rejects_bare_values():
    with pytest.raises(argparse.ArgumentTypeError):
        density_cli.parse_filters(["apartment"])

def test_density_by_address(cli, capsys, density_body):
    cli.client = FakeClient(density=density_body)
    cli.density(filters={"asset_type": "apartment"})

    assert cli.client.params["address_names"] == "Entroncamento"
    assert cli.client.params["asset_type"] == "apartment"

    out = capsys.readouterr().out
    assert "250k" in out
    assert "2 points of 3 listings" in out
    assert "1 search-area shapes" in out

def test_density_by_polygon(cli, capsys, tmp_path, search_ring):
    polygon_file = tmp_path / "area.json"
    polygon_file.write_text(json.dumps([search_ring]))
    cli.client = FakeClient(density={"data": [], "geometry": []})

    cli.density(polygon_file=str(polygon_file))

    assert json.loads(cli.client.params["polygon"]) == [search_ring]
    assert "address_names" not in cli.client.params
    assert "Polygon search" in capsys.readouterr().out

def test_listing(cli, capsys):
    cli.client = FakeClient(listing={"title": "T2", "price": 250000, "images": ["a.jpg"]})
    cli.listing("abc")

    out = capsys.readouterr().out
    assert "T2" in out
    assert "a.jpg" not in out

def test_main_reports_api_errors(monkeypatch, capsys):
    monkeypatch.setattr(
        density_cli, "MapApiClient",
        lambda *args, **kwargs: FakeClient(error=MapApiError("Failed to fetch listing.", 404)),
    )

    assert density_cli.main(["listing", "gone"]) == 1
    assert "Failed to fetch listing." in capsys.readouterr().out
