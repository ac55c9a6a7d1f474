"""Density search proxy endpoint"""

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

prospect_ns = Namespace("prospect", description="Density search proxy")

# Response models
geometry_model = prospect_ns.model("SearchGeometry", {
    "type": fields.String(description="Polygon or MultiPolygon", enum=["Polygon", "MultiPolygon"]),
    "polyline": fields.List(fields.String, description="Encoded rings, precision 6"),
})

density_model = prospect_ns.model("Density", {
    "data": fields.List(fields.Raw, description="Samples as [longitude, latitude, id, price]"),
    "geometry": fields.List(fields.Nested(geometry_model), description="Search-area geometry"),
    "total": fields.Integer(description="Total listings matched"),
})

error_model = prospect_ns.model("DensityError", {
    "error": fields.String(description="Error message"),
    "details": fields.Raw(description="Upstream error body"),
})

@prospect_ns.route("/density")
class Density(Resource):
    """Proxy to the engine density search"""

    @prospect_ns.doc("get_density",
        params={
            'country': 'Country code: pt, es or uk',
            'address_names': 'Address names (named address mode)',
            'addresses': 'Comma separated address ids (named address mode)',
            'polygon': 'JSON ring sequence of [lng, lat] pairs (drawn polygon mode)',
            'ad_type': 'Ad type, e.g. sale or rent',
        })
    @prospect_ns.response(200, "Success", density_model)
    @prospect_ns.response(502, "Search engine unreachable or returned invalid JSON", error_model)
    @prospect_ns.response(500, "Engine not configured or upstream error", error_model)
    def get(self):
        """Forward all query parameters to the engine density endpoint"""
        query = list(request.args.items(multi=True))
        logger.info("Density proxy called", query=request.args.to_dict(flat=False))

        try:
            with engine_client_for(current_app) as client:
                data = client.get_density(query)
        except EngineConnectionError as e:
            logger.error("Network error in density route", error=str(e))
            get_monitor().record_upstream_failure("density", "network")
            return {"error": "Failed to connect to density search service."}, 502
        except EngineUpstreamError as e:
            get_monitor().record_upstream_failure("density", "status")
            return {"error": "Failed to fetch density data.", "details": e.details}, e.status_code
        except EngineResponseError as e:
            logger.error("Failed to parse JSON from density search", error=str(e))
            get_monitor().record_upstream_failure("density", "parse")
            return {"error": "Invalid response from density search service."}, 502

        return data, 200
