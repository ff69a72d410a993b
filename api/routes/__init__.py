"""API route modules."""

from routes.api_routes import router as api_router
from routes.health_routes import router as health_router

__all__ = [
    "api_router",
    "health_router",
]
