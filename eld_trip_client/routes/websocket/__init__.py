# eld_trip_client/routes/websocket/__init__.py
"""WebSocket route handlers initialization."""

import logging

from eld_trip_client.routes import NAMESPACE

from .connection import ConnectionHandler
from .search import SearchHandler
from .trip import TripHandler

logger = logging.getLogger(__name__)


def register_websocket_handlers(socketio, manager=None, namespace=NAMESPACE):
    """Register all WebSocket event handlers with SocketIO.

    Args:
        socketio: Flask-SocketIO instance
        manager: ViewSessionManager to use; the global one by default
        namespace: Socket.IO namespace for every handler
    """
    logger.info("Registering WebSocket handlers...")

    try:
        handlers = [
            ConnectionHandler(socketio, namespace, manager),
            SearchHandler(socketio, namespace, manager),
            TripHandler(socketio, namespace, manager),
        ]
        for handler in handlers:
            logger.info(f"Registering {type(handler).__name__} for namespace: {namespace}")
            handler.register_handlers()

        logger.info("✅ WebSocket handlers registered successfully")

    except Exception as e:
        logger.error(f"❌ Failed to register WebSocket handlers: {e}")
        logger.exception("WebSocket registration error:")
        raise


# Export for main.py
__all__ = ['register_websocket_handlers', 'NAMESPACE']
