# eld_trip_client/routes/websocket/search.py
"""WebSocket handlers for address search and form input."""

import logging

from eld_trip_client.api.models import LocationField

from .base import BaseWebSocketHandler, call_on_loop

logger = logging.getLogger(__name__)


class SearchHandler(BaseWebSocketHandler):
    """Handles keystrokes, suggestion picks and plain form fields."""

    def register_handlers(self):
        """Register search-related event handlers."""

        @self.socketio.on("query_change", namespace=self.namespace)
        def handle_query_change(data):
            """One keystroke in a location field."""
            view_session = self.get_view_session()
            if view_session is None:
                return
            try:
                field = LocationField.parse((data or {}).get("field"))
                text = str((data or {}).get("text") or "")
                logger.debug(f"⌨️ {field.value} query from {view_session.sid}: '{text}'")
                self.manager.call_soon(view_session.search.on_query_change, field, text)
            except Exception as exc:
                self.handle_error(exc, "query_change")

        @self.socketio.on("select_candidate", namespace=self.namespace)
        def handle_select_candidate(data):
            """The user picked suggestion ``index`` for ``field``."""
            view_session = self.get_view_session()
            if view_session is None:
                return
            try:
                field = LocationField.parse((data or {}).get("field"))
                location = self.manager.run(
                    call_on_loop(view_session.search.select_index, field, (data or {}).get("index"))
                )
                self.emit_to_client(
                    "location_selected",
                    {"field": field.value, "location": location.to_wire()},
                )
            except Exception as exc:
                self.handle_error(exc, "select_candidate")

        @self.socketio.on("update_form", namespace=self.namespace)
        def handle_update_form(data):
            """A driver, cycle or option field changed."""
            view_session = self.get_view_session()
            if view_session is None:
                return
            try:
                self.manager.run(
                    call_on_loop(
                        view_session.form.update_field,
                        (data or {}).get("name"),
                        (data or {}).get("value"),
                    )
                )
            except Exception as exc:
                self.handle_error(exc, "update_form")
