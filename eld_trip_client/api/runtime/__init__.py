"""Event loop, map widget handles and per-view sessions.

``session_manager`` is imported directly by callers; it depends on the
services package, which itself depends on the widget module here.
"""

from .loop import EventLoopThread
from .widget import CameraOptions, DataLayer, MapWidget, SocketIOMapWidget

__all__ = ['EventLoopThread', 'CameraOptions', 'DataLayer', 'MapWidget', 'SocketIOMapWidget']
