"""API routes package."""

from relay.routes.file_routes import router as file_router
from relay.routes.socket_routes import router as socket_router

__all__ = ["file_router", "socket_router"]
