"""API routes and WebSocket handlers."""

from .routes import router
from .websocket import ConnectionHandler, websocket_endpoint

__all__ = ["router", "ConnectionHandler", "websocket_endpoint"]
