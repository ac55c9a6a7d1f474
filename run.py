#!/usr/bin/env python3
"""Run the Density Map Flask application"""

from backend.app import app
from backend.config.settings import settings
from backend.utils.exceptions import ConfigurationError

if __name__ == "__main__":
    # Validate settings
    try:
        settings.validate()
        print(f"✓ Settings validated")
        print(f"  - Engine: {settings.ENGINE_ENDPOINT}")
        print(f"  - Default search: {settings.DEFAULT_ADDRESS_NAMES} ({settings.DEFAULT_COUNTRY}, {settings.DEFAULT_AD_TYPE})")
    except ConfigurationError as e:
        print(f"✗ Settings validation failed: {e}")
        exit(1)

    # Run app
    print(f"\n🚀 Starting Density Map API on http://{settings.API_HOST}:{settings.API_PORT}")
    if settings.DEBUG:
        print(f"📚 API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs\n")

    app.run(
        host=settings.API_HOST,
        port=settings.API_PORT,
        debug=settings.DEBUG
    )
