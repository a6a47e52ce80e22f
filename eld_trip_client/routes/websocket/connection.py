# eld_trip_client/routes/websocket/connection.py
"""WebSocket connection and disconnection handlers."""

import time
import logging
from flask import request
from flask_socketio import disconnect

from .base import BaseWebSocketHandler
from .callback_helpers import make_search_callback, make_widget_factory

logger = logging.getLogger(__name__)


class ConnectionHandler(BaseWebSocketHandler):
    """Handles WebSocket connection lifecycle events."""

    def register_handlers(self):
        """Register connection-related event handlers."""

        @self.socketio.on('connect', namespace=self.namespace)
        def handle_connect(auth=None):
            """Create the view session for a new browser view."""
            sid = request.sid
            self.log_event('connect')

            try:
                view_session = self.manager.create_session(
                    sid,
                    make_widget_factory(self.socketio, sid, self.namespace),
                    on_search_update=make_search_callback(self.socketio, sid, self.namespace),
                )
                if not view_session:
                    logger.error("❌ Failed to create view session - server at capacity")
                    self.emit_to_client('error', {'message': 'Server at capacity', 'source': 'server'})
                    disconnect()
                    return

                logger.info(f"✅ View session ready: {view_session.session_id}")
                self.emit_to_client('connected', {
                    'session_id': view_session.session_id,
                    'status': 'connected',
                })

            except Exception as e:
                logger.error(f"Connection error: {e}")
                self.handle_error(e, 'connect')
                disconnect()

        @self.socketio.on('disconnect', namespace=self.namespace)
        def handle_disconnect(*args):
            """Tear down the client's view session."""
            try:
                self.manager.remove_session(request.sid, 'client_disconnect')
                logger.info(f"🔌 WebSocket disconnected, view session for {request.sid} removed")
            except Exception as e:
                logger.error(f"Error during disconnect of {request.sid}: {e}")

        @self.socketio.on('ping', namespace=self.namespace)
        def handle_ping(*args):
            """Handle ping for connection testing."""
            self.emit_to_client('pong', {'timestamp': time.time()})
