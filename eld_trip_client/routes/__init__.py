# eld_trip_client/routes/__init__.py
from flask_socketio import SocketIO

# bare instance; main.py binds it to the app with init_app()
socketio = SocketIO(
    async_mode="threading",
    logger=False,
    engineio_logger=False,
)
NAMESPACE = "/trips/ws"
