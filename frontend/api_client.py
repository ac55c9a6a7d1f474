"""Client for the density map proxy API"""

from typing import Any, Dict, Optional

import requests
import structlog

from backend.utils.exceptions import MapApiError

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "http://localhost:5000/api"

class MapApiClient:
    """Client for the density and listing proxy endpoints"""

    def __init__(self, base_url: str = DEFAULT_API_URL, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def health_check(self) -> bool:
        """Check if the API is up and configured"""
        try:
            root = self.base_url.rsplit('/api', 1)[0]
            response = self.session.get(f"{root}/health", timeout=5)
            return response.status_code == 200
        except requests.RequestException:
            return False

    def fetch_density(self, params: Dict[str, Any]) -> Any:
        """Density points and geometry for the given query parameters"""
        return self._get("/prospect/density", params, "Failed to fetch density data")

    def fetch_listing(self, platform_hash: str) -> Dict[str, Any]:
        """Details of one listing"""
        return self._get(
            "/metasearch-property",
            {"platform_hash": platform_hash},
            "Failed to fetch property details"
        )

    def _get(self, path: str, params: Dict[str, Any], fallback_message: str) -> Any:
        try:
            response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Map API request failed", path=path, error=str(e))
            raise MapApiError(f"{fallback_message}: {e}") from e

        if not response.ok:
            try:
                message = response.json().get("error") or fallback_message
            except (ValueError, AttributeError):
                message = fallback_message
            raise MapApiError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise MapApiError(f"{fallback_message}: invalid JSON") from e
