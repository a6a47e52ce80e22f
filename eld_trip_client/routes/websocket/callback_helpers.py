# eld_trip_client/routes/websocket/callback_helpers.py
"""Helpers wiring view session callbacks to Socket.IO events."""

import logging

from eld_trip_client.api.runtime.widget import SocketIOMapWidget
from eld_trip_client.routes import NAMESPACE

logger = logging.getLogger(__name__)


def make_search_callback(socketio, sid: str, namespace: str = NAMESPACE):
    """Bridge search session updates → ``suggestions`` events for one client."""

    def _on_search_update(field, search_session) -> None:
        try:
            socketio.emit(
                "suggestions",
                {"field": field.value, **search_session.to_dict()},
                room=sid,
                namespace=namespace,
            )
        except Exception as exc:
            logger.exception("Failed emitting suggestions: %s", exc)

    return _on_search_update


def make_widget_factory(socketio, sid: str, namespace: str = NAMESPACE):
    """Map widgets for one client are Socket.IO driven browser maps."""

    def _create_widget():
        return SocketIOMapWidget(socketio, sid, namespace)

    return _create_widget
