"""Shared fixtures"""

import httpx
import pytest

from backend.app import create_app
from backend.config.settings import Settings
from backend.map.polyline import encode
from backend.map.search_query import SearchDefaults

ENGINE_URL = "https://engine.test"
ENGINE_KEY = "secret-key"

@pytest.fixture
def engine_env(monkeypatch):
    monkeypatch.setenv("ENGINE_ENDPOINT", ENGINE_URL)
    monkeypatch.setenv("ENGINE_API_KEY", ENGINE_KEY)
    monkeypatch.setenv("LOG_FORMAT", "console")

@pytest.fixture
def engine_requests():
    """Requests that reached the mocked engine"""
    return []

@pytest.fixture
def make_client(engine_env, engine_requests):
    """Build a test client whose engine calls go to ``handler``"""
    def _make(handler, settings=None):
        def recording_handler(request):
            engine_requests.append(request)
            return handler(request)

        app = create_app(settings or Settings(), engine_transport=httpx.MockTransport(recording_handler))
        app.config["TESTING"] = True
        return app.test_client()

    return _make

@pytest.fixture
def defaults():
    return SearchDefaults(
        address_names="Entroncamento",
        address_ids=["101", "102"],
        country="pt",
        ad_type="sale",
    )

@pytest.fixture
def search_ring():
    return [[-8.5, 39.4], [-8.4, 39.4], [-8.4, 39.5], [-8.5, 39.4]]

@pytest.fixture
def density_body():
    """Engine density response with one polygon and three samples"""
    ring = [(39.4, -8.5), (39.4, -8.4), (39.5, -8.4), (39.4, -8.5)]
    return {
        "data": [
            [-8.45, 39.45, "a1", 250000],
            [-8.46, 39.46, "a2", 50],
            ["bad", 39.47, "a3", 900],
        ],
        "geometry": [{"type": "Polygon", "polyline": [encode(ring)]}],
        "total": 3,
    }
