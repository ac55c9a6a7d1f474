"""Density Map Flask Application"""

import logging
import os
import sys

# Add the project root to Python path for direct execution
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from flask import Flask, jsonify
from flask_restx import Api
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_compress import Compress
import structlog
from datetime import datetime
from typing import Optional

from backend.config.settings import Settings, settings as default_settings
from backend.api.routes import register_routes
from backend.utils.exceptions import ConfigurationError, DensityMapException
from backend.utils.monitoring import add_performance_monitoring, get_performance_report

def configure_logging(settings: Settings) -> None:
    """Configure structured logging"""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=settings.LOG_LEVEL.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.LOG_FORMAT == "json" else structlog.dev.ConsoleRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

logger = structlog.get_logger(__name__)

def create_app(settings: Optional[Settings] = None, engine_transport=None) -> Flask:
    """
    Create and configure Flask application

    Args:
        settings: Settings to use; defaults to the environment-loaded instance
        engine_transport: Optional httpx transport for engine calls (tests)
    """
    settings = settings or default_settings
    configure_logging(settings)

    # Create Flask app
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.SECRET_KEY
    app.config["DEBUG"] = settings.DEBUG
    app.config["SETTINGS"] = settings
    app.config["ENGINE_TRANSPORT"] = engine_transport

    # Configure CORS for the map frontends
    CORS(app,
         origins=settings.ALLOWED_ORIGINS,
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         methods=["GET", "OPTIONS"]
    )

    # Configure Response Compression
    Compress(app)
    app.config['COMPRESS_ALGORITHM'] = 'gzip'
    app.config['COMPRESS_LEVEL'] = 6
    app.config['COMPRESS_MIN_SIZE'] = 500

    # Configure Rate Limiting
    limiter = Limiter(
        app=app,
        key_func=get_remote_address,
        default_limits=[
            f"{settings.RATE_LIMIT_PER_MINUTE} per minute",
            f"{settings.RATE_LIMIT_PER_HOUR} per hour"
        ],
        storage_uri=settings.RATELIMIT_STORAGE_URI
    )

    # Configure API
    api = Api(
        app,
        version="1.0",
        title="Density Map API",
        description="Proxy and tooling for the real-estate density map",
        doc="/docs" if settings.DEBUG else False,
        prefix="/api"
    )

    # Store extensions on app
    app.limiter = limiter
    app.api = api

    @api.errorhandler(ConfigurationError)
    def handle_configuration_error(error):
        """Missing engine configuration is fatal for the request"""
        logger.error("Configuration error", error=str(error))
        return {"error": "ConfigurationError", "message": str(error)}, 500

    @api.errorhandler(DensityMapException)
    def handle_density_map_exception(error):
        """Handle custom density map exceptions"""
        logger.error("Density map exception", error=str(error), type=type(error).__name__)
        return {"error": type(error).__name__, "message": str(error)}, 400

    # Register routes
    register_routes(api)

    # Add performance monitoring
    monitor = add_performance_monitoring(app)

    # Performance metrics endpoint
    @app.route("/metrics/performance")
    def performance_metrics():
        """Get performance metrics"""
        return jsonify(get_performance_report(monitor))

    # Health check endpoint (outside API prefix)
    @app.route("/health", methods=["GET"])
    def health_check():
        """Report whether the engine proxy can serve requests"""
        engine_configured = settings.engine_configured()
        health_status = {
            "status": "healthy" if engine_configured else "misconfigured",
            "timestamp": datetime.utcnow().isoformat(),
            "services": {
                "engine": {"configured": engine_configured}
            }
        }

        status_code = 200 if engine_configured else 503
        return jsonify(health_status), status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        """Handle 404 errors"""
        return jsonify({
            "error": "NotFound",
            "message": "The requested resource was not found"
        }), 404

    @app.route('/')
    def welcome():
        """Welcome page with endpoint overview"""
        return jsonify({
            "message": "Density Map API",
            "version": "1.0",
            "health_check": "/health",
            "endpoints": {
                "density": {
                    "method": "GET",
                    "url": "/api/prospect/density?address_names=Entroncamento&country=pt&ad_type=sale",
                    "description": "Density points and search-area geometry"
                },
                "listing": {
                    "method": "GET",
                    "url": "/api/metasearch-property?platform_hash={id}",
                    "description": "Details of one listing"
                }
            }
        })

    logger.info(
        "Density map app created",
        debug=settings.DEBUG,
        engine_configured=settings.engine_configured()
    )

    return app

# Create app instance
app = create_app()

if __name__ == "__main__":
    # Validate settings
    default_settings.validate()

    # Run development server
    app.run(
        host=default_settings.API_HOST,
        port=default_settings.API_PORT,
        debug=default_settings.DEBUG
    )
