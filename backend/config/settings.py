import os
from typing import List
from dotenv import load_dotenv

from backend.utils.exceptions import ConfigurationError

# Load environment variables
load_dotenv()

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"

class Settings:
    """Application configuration settings

    Values are read from the environment when the object is built, so a
    fresh ``Settings()`` picks up changes made after import.
    """

    def __init__(self):
        # Search engine
        self.ENGINE_ENDPOINT: str = os.getenv("ENGINE_ENDPOINT", "")
        self.ENGINE_API_KEY: str = os.getenv("ENGINE_API_KEY", "")
        self.ENGINE_TIMEOUT: float = float(os.getenv("ENGINE_TIMEOUT", "30"))

        # Flask
        self.DEBUG: bool = _env_bool("DEBUG", "false")
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key")
        self.API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
        self.API_PORT: int = int(os.getenv("API_PORT", "5000"))

        # Rate Limiting
        self.RATE_LIMIT_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))
        self.RATE_LIMIT_PER_HOUR: int = int(os.getenv("RATE_LIMIT_PER_HOUR", "7200"))  # 120 * 60
        self.RATELIMIT_STORAGE_URI: str = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

        # Security
        self.ALLOWED_ORIGINS: List[str] = os.getenv(
            "ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:8501"
        ).split(",")

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
        self.LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")

        # Default search (named address mode)
        self.DEFAULT_ADDRESS_NAMES: str = os.getenv("DEFAULT_ADDRESS_NAMES", "Entroncamento")
        self.DEFAULT_ADDRESS_IDS: str = os.getenv("DEFAULT_ADDRESS_IDS", "")
        self.DEFAULT_COUNTRY: str = os.getenv("DEFAULT_COUNTRY", "pt")
        self.DEFAULT_AD_TYPE: str = os.getenv("DEFAULT_AD_TYPE", "sale")

        # Map client
        self.MAP_API_URL: str = os.getenv("MAP_API_URL", "http://localhost:5000/api")
        self.DETAIL_CACHE_TTL: int = int(os.getenv("DETAIL_CACHE_TTL", "300"))  # 5 minutes
        self.CLIENT_TIMEOUT: float = float(os.getenv("CLIENT_TIMEOUT", "30"))

    def engine_endpoint(self) -> str:
        """Engine base URL, failing fast when unset"""
        if not self.ENGINE_ENDPOINT:
            raise ConfigurationError("ENGINE_ENDPOINT is not set")
        return self.ENGINE_ENDPOINT.rstrip("/")

    def engine_api_key(self) -> str:
        """Engine credential, failing fast when unset"""
        if not self.ENGINE_API_KEY:
            raise ConfigurationError("ENGINE_API_KEY is not set")
        return self.ENGINE_API_KEY

    def engine_configured(self) -> bool:
        return bool(self.ENGINE_ENDPOINT and self.ENGINE_API_KEY)

    def validate(self) -> None:
        """Validate required settings"""
        self.engine_endpoint()
        self.engine_api_key()

        if self.LOG_FORMAT not in ["json", "console"]:
            raise ConfigurationError(f"Invalid LOG_FORMAT: {self.LOG_FORMAT}")

        if self.ENGINE_TIMEOUT <= 0:
            raise ConfigurationError(f"Invalid ENGINE_TIMEOUT: {self.ENGINE_TIMEOUT}")

    @property
    def default_search(self) -> "SearchDefaults":
        from backend.map.search_query import SearchDefaults

        return SearchDefaults(
            address_names=self.DEFAULT_ADDRESS_NAMES,
            address_ids=self.DEFAULT_ADDRESS_IDS,
            country=self.DEFAULT_COUNTRY,
            ad_type=self.DEFAULT_AD_TYPE,
        )

# Settings for entry-point scripts; the app factory accepts its own instance
settings = Settings()
