"""API Routes Registration"""

from flask_restx import Api

def register_routes(api: Api) -> None:
    """Register all API routes"""

    # Import namespaces
    from backend.api.routes.prospect import prospect_ns
    from backend.api.routes.listings import listings_ns

    # Register namespaces
    api.add_namespace(prospect_ns, path="/prospect")
    api.add_namespace(listings_ns, path="/metasearch-property")
