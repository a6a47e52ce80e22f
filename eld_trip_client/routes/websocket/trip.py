# eld_trip_client/routes/websocket/trip.py
"""WebSocket handlers for plan submission, history and the map widget."""

import logging
import time

from eld_trip_client.api.errors import InputValidationError

from .base import BaseWebSocketHandler

logger = logging.getLogger(__name__)


class TripHandler(BaseWebSocketHandler):
    """Handles trip results and map widget lifecycle events."""

    def _emit_trip(self, view, source):
        self.emit_to_client(
            "trip_result",
            {**view.to_dict(), "source": source, "timestamp": time.time()},
        )

    def register_handlers(self):
        """Register trip-related event handlers."""

        @self.socketio.on("submit_trip", namespace=self.namespace)
        def handle_submit_trip(data=None):
            """Submit the form; the form is kept as-is if this fails."""
            view_session = self.get_view_session()
            if view_session is None:
                return
            try:
                view = self.manager.run(view_session.submit_trip())
                self._emit_trip(view, "submission")
                logger.info(f"🚚 Trip {view.result.trip_id} planned for {view_session.sid}")
            except Exception as exc:
                self.handle_error(exc, "submit_trip")

        @self.socketio.on("view_history_trip", namespace=self.namespace)
        def handle_view_history_trip(data):
            """Re-open a stored trip in the results view."""
            view_session = self.get_view_session()
            if view_session is None:
                return
            try:
                trip_id = (data or {}).get("trip_id")
                if not trip_id:
                    raise InputValidationError("trip_id is required")
                view = self.manager.run(view_session.open_history_trip(trip_id))
                self._emit_trip(view, "history")
            except Exception as exc:
                self.handle_error(exc, "view_history_trip")

        @self.socketio.on("map_ready", namespace=self.namespace)
        def handle_map_ready(data=None):
            """The browser finished initializing a map widget."""
            view_session = self.get_view_session()
            if view_session is None:
                return
            widget_id = (data or {}).get("widget_id")
            logger.info(f"📍 Map {widget_id} ready for {view_session.sid}")
            self.manager.call_soon(view_session.map_ready, widget_id)

        @self.socketio.on("leave_view", namespace=self.namespace)
        def handle_leave_view(data=None):
            """The browser navigated away from the results view."""
            view_session = self.get_view_session()
            if view_session is None:
                return
            self.manager.call_soon(view_session.leave_view)

        @self.socketio.on("get_stats", namespace=self.namespace)
        def handle_get_stats(data=None):
            """Get session statistics for debugging."""
            view_session = self.get_view_session()
            if view_session is None:
                return
            self.emit_to_client("stats", {
                "session_id": view_session.session_id,
                "created_at": view_session.created_at.isoformat(),
                "last_activity": view_session.last_activity.isoformat(),
                "submissions": view_session.submission_count,
                "history_views": view_session.history_views,
                "searches": view_session.search.requests_issued,
                "map_state": view_session.map.state.value,
                "widgets_created": view_session.map.widgets_created,
                "manager": self.manager.get_stats(),
            })
