"""Search engine client used by the proxy routes"""

from typing import Any, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import quote

import httpx
import structlog

from backend.config.settings import Settings
from backend.utils.exceptions import (
    EngineConnectionError,
    EngineResponseError,
    EngineUpstreamError,
)

logger = structlog.get_logger(__name__)

QueryParams = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]

class EngineClient:
    """Client for the prospect search engine"""

    DENSITY_PATH = "/prospect/density"
    LISTING_PATH = "/prospect/listing/{platform_hash}"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize engine client

        Args:
            base_url: Engine endpoint, e.g. https://engine.example.com
            api_key: Value sent in the x-api-key header
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.session = httpx.Client(
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "x-api-key": api_key,
            },
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> "EngineClient":
        """Build a client, raising ConfigurationError if the engine is not configured"""
        return cls(
            base_url=settings.engine_endpoint(),
            api_key=settings.engine_api_key(),
            timeout=settings.ENGINE_TIMEOUT,
            transport=transport,
        )

    def __enter__(self) -> "EngineClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def get_density(self, params: QueryParams) -> Any:
        """Forward density query parameters verbatim"""
        return self._get_json(self.DENSITY_PATH, params=params)

    def get_listing(self, platform_hash: str) -> Any:
        """Fetch one listing by its platform hash"""
        path = self.LISTING_PATH.format(platform_hash=quote(platform_hash, safe=""))
        return self._get_json(path)

    def _get_json(self, path: str, params: Optional[QueryParams] = None) -> Any:
        url = f"{self.base_url}{path}"

        try:
            response = self.session.get(url, params=params)
        except httpx.RequestError as e:
            logger.error("Engine request failed", path=path, error=str(e))
            raise EngineConnectionError(f"Failed to reach engine: {e}") from e

        if not response.is_success:
            try:
                details = response.json()
            except ValueError:
                details = {"message": "Unknown error"}
            logger.error("Engine returned an error", path=path, status_code=response.status_code, details=details)
            raise EngineUpstreamError(response.status_code, details)

        try:
            return response.json()
        except ValueError as e:
            logger.error("Engine returned invalid JSON", path=path, error=str(e))
            raise EngineResponseError("Engine response is not valid JSON") from e

def engine_client_for(app) -> EngineClient:
    """Engine client built from a Flask app's settings and optional test transport"""
    return EngineClient.from_settings(
        app.config["SETTINGS"],
        transport=app.config.get("ENGINE_TRANSPORT"),
    )
