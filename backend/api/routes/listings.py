"""Listing detail proxy endpoint"""

from flask import current_app, request
from flask_restx import Namespace, Resource, fields
import structlog

from backend.services.engine_client import engine_client_for
from backend.utils.exceptions import (
    EngineConnectionError,
    EngineResponseError,
    EngineUpstreamError,
)
from backend.utils.monitoring import get_monitor

logger = structlog.get_logger(__name__)

listings_ns = Namespace("metasearch-property", description="Listing detail proxy")

# Response models
error_model = listings_ns.model("ListingError", {
    "error": fields.String(description="Error message"),
    "details": fields.Raw(description="Upstream error body"),
})

@listings_ns.route("")
class ListingDetail(Resource):
    """Proxy to the engine listing lookup"""

    @listings_ns.doc("get_listing", params={'platform_hash': 'Listing identifier (required)'})
    @listings_ns.response(200, "Listing details as returned by the engine")
    @listings_ns.response(400, "platform_hash missing or repeated", error_model)
    @listings_ns.response(502, "Listings service unreachable or returned invalid JSON", error_model)
    def get(self):
        """Fetch one listing by platform hash"""
        values = request.args.getlist("platform_hash")

        # A repeated parameter is as unusable as a missing one
        if len(values) != 1 or not values[0]:
            return {"error": "platform_hash is required"}, 400

        platform_hash = values[0]

        try:
            with engine_client_for(current_app) as client:
                data = client.get_listing(platform_hash)
        except EngineConnectionError as e:
            logger.error("Network error in metasearch-property route", error=str(e))
            get_monitor().record_upstream_failure("listing", "network")
            return {"error": "Failed to connect to listings service."}, 502
        except EngineUpstreamError as e:
            get_monitor().record_upstream_failure("listing", "status")
            return {"error": "Failed to fetch listing.", "details": e.details}, e.status_code
        except EngineResponseError as e:
            logger.error("Failed to parse JSON from listings service", error=str(e))
            get_monitor().record_upstream_failure("listing", "parse")
            return {"error": "Invalid response from listings service."}, 502

        logger.info("Listing fetched", platform_hash=platform_hash)
        return data, 200
