"""
ELD Trip Client – main application entry point

* Flask app serving the trips JSON API under ``/trips``.
* Socket.IO namespace ``/trips/ws`` through which each browser view drives
  its address search and its map widget.
* One background asyncio loop runs every search, map and overlay operation.
"""

import os
import logging

from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv

# --------------------------------------------------------------------------- #
# Environment & logging
# --------------------------------------------------------------------------- #
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

from eld_trip_client.api.config import get_cors_origins, get_port, validate_config  # noqa: E402
from eld_trip_client.api.runtime.loop import get_event_loop_thread  # noqa: E402
from eld_trip_client.routes import socketio  # noqa: E402
from eld_trip_client.routes.travel import create_trips_blueprint  # noqa: E402
from eld_trip_client.routes.websocket import register_websocket_handlers  # noqa: E402

validate_config()

# --------------------------------------------------------------------------- #
# Flask initialisation
# --------------------------------------------------------------------------- #
app = Flask(__name__)

app.secret_key = os.getenv("FLASK_SECRET_KEY") or os.urandom(32).hex()
if "FLASK_SECRET_KEY" not in os.environ:
    logger.warning("FLASK_SECRET_KEY not set; using a per-process random key")

# CORS for the browser front-end
CORS(app, origins=get_cors_origins(), supports_credentials=True)

# --------------------------------------------------------------------------- #
# Event loop & Socket.IO
# --------------------------------------------------------------------------- #
loop_thread = get_event_loop_thread()
loop_thread.start()

socketio.init_app(app, cors_allowed_origins=get_cors_origins(), path="socket.io/")
logger.info("Socket.IO initialised (async_mode=threading)")

app.register_blueprint(create_trips_blueprint(loop_thread=loop_thread))
register_websocket_handlers(socketio)


@app.route("/debug")
def debug():
    """Simple JSON health endpoint."""
    return {
        "status": "ok",
        "socketio_initialized": True,
        "event_loop_running": loop_thread.is_running,
        "endpoints": {
            "websocket_namespace": "/trips/ws",
            "health": "/trips/health",
        },
    }


# --------------------------------------------------------------------------- #
# Local development runner ( `python main.py` )
# --------------------------------------------------------------------------- #
if __name__ == "__main__":
    port = get_port()
    logger.info("Starting trip client on http://localhost:%d", port)
    socketio.run(app, host="0.0.0.0", port=port, debug=False, allow_unsafe_werkzeug=True)

__all__ = ["app", "socketio"]
