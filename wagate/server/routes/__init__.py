"""Route handlers for gateway endpoints."""
from wagate.server.routes.health import create_health_router
from wagate.server.routes.sessions import create_session_router
__all__ = [
    "create_health_router",
    "create_session_router",
]
