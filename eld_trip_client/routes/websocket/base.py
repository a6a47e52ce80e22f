# eld_trip_client/routes/websocket/base.py
"""Base WebSocket handler with common functionality."""

import logging
from flask import request

from eld_trip_client.api.errors import InputValidationError, PlannerError, TransientNetworkError
from eld_trip_client.api.runtime.session_manager import get_session_manager
from eld_trip_client.routes import NAMESPACE

logger = logging.getLogger(__name__)


async def call_on_loop(fn, *args):
    """Run a plain callable on the event loop and hand back its result."""
    return fn(*args)


def error_source(error):
    if isinstance(error, InputValidationError):
        return "validation"
    if isinstance(error, (PlannerError, TransientNetworkError)):
        return "planner"
    return "server"


class BaseWebSocketHandler:
    """Base class for WebSocket handlers with common functionality."""

    def __init__(self, socketio, namespace=NAMESPACE, manager=None):
        self.socketio = socketio
        self.namespace = namespace
        self._manager = manager

    @property
    def manager(self):
        return self._manager or get_session_manager()

    def emit_to_client(self, event, data, room=None):
        """Emit event to the current client, or to ``room``."""
        try:
            self.socketio.emit(event, data, room=room or request.sid, namespace=self.namespace)
        except Exception as e:
            logger.error(f"Failed to emit {event}: {e}")

    def get_view_session(self):
        """The caller's view session, or None after emitting an error."""
        view_session = self.manager.get_session(request.sid)
        if view_session is None:
            self.emit_to_client("error", {"message": "No session available", "source": "server"})
        return view_session

    def log_event(self, event_name, data=None):
        """Log WebSocket events consistently."""
        if data:
            logger.info(f"[WS] {event_name} - Client: {request.sid}, Data: {data}")
        else:
            logger.info(f"[WS] {event_name} - Client: {request.sid}")

    def handle_error(self, error, event_name=""):
        """Handle and log errors consistently."""
        logger.error(f"[WS] Error in {event_name} - Client: {request.sid}, Error: {error}")
        self.emit_to_client(
            'error',
            {'message': str(error), 'event': event_name, 'source': error_source(error)},
        )
