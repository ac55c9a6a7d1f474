"""Tests for the engine HTTP client"""

import httpx
import pytest

from backend.config.settings import Settings
from backend.services.engine_client import EngineClient
from backend.utils.exceptions import (
    ConfigurationError,
    EngineConnectionError,
    EngineResponseError,
    EngineUpstreamError,
)

def make_client(handler, sent=None):
    def transport_handler(request):
        if sent is not None:
            sent.append(request)
        return handler(request)

    return EngineClient("https://engine.test/", "key-1", transport=httpx.MockTransport(transport_handler))

def test_density_request():
    sent = []
    with make_client(lambda r: httpx.Response(200, json={"data": []}), sent) as client:
        assert client.get_density([("country", "pt"), ("addresses", "1,2")]) == {"data": []}

    assert sent[0].url.path == "/prospect/density"
    assert list(sent[0].url.params.multi_items()) == [("country", "pt"), ("addresses", "1,2")]
    assert sent[0].headers["x-api-key"] == "key-1"

def test_listing_hash_is_path_encoded():
    sent = []
    with make_client(lambda r: httpx.Response(200, json={}), sent) as client:
        client.get_listing("a b")

    assert sent[0].url.raw_path == b"/prospect/listing/a%20b"

def test_connection_error():
    def refuse(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with make_client(refuse) as client:
        with pytest.raises(EngineConnectionError):
            client.get_density({})

def test_upstream_error_keeps_status_and_body():
    with make_client(lambda r: httpx.Response(422, json={"message": "bad polygon"})) as client:
        with pytest.raises(EngineUpstreamError) as excinfo:
            client.get_density({"polygon": "[]"})

    assert excinfo.value.status_code == 422
    assert excinfo.value.details == {"message": "bad polygon"}

def test_invalid_json():
    with make_client(lambda r: httpx.Response(200, text="<html>")) as client:
        with pytest.raises(EngineResponseError):
            client.get_listing("abc")

def test_from_settings_requires_configuration(monkeypatch):
    monkeypatch.delenv("ENGINE_ENDPOINT", raising=False)
    monkeypatch.setenv("ENGINE_API_KEY", "key-1")

    with pytest.raises(ConfigurationError, match="ENGINE_ENDPOINT is not set"):
        EngineClient.from_settings(Settings())

def test_from_settings(engine_env):
    with EngineClient.from_settings(Settings()) as client:
        assert client.base_url == "https://engine.test"
        assert client.session.headers["x-api-key"] == "secret-key"
