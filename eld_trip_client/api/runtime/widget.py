# eld_trip_client/api/runtime/widget.py
"""Map widget handles driven from Python.

A :class:`MapWidget` is the single-owner handle for one browser map
instance.  Only the map lifecycle controller creates and disposes widgets;
the overlay renderer only writes to a widget's data layer.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from eld_trip_client.api.errors import WidgetLifecycleError
from eld_trip_client.api.models import Coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraOptions:
    """Initial framing: either a bounding box with padding, or center + zoom."""

    bounds: Optional[Tuple[float, float, float, float]] = None  # west, south, east, north
    padding: int = 0
    center: Optional[Coordinate] = None
    zoom: Optional[float] = None
    language: str = "en-US"

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {"language": self.language}
        if self.bounds is not None:
            data["bounds"] = list(self.bounds)
            data["padding"] = self.padding
        else:
            data["center"] = self.center.to_lon_lat() if self.center else None
            data["zoom"] = self.zoom
        return data


@dataclass
class DataLayer:
    """GeoJSON features destined for one widget's data source."""

    widget_id: str
    features: List[dict] = field(default_factory=list)

    def add(self, feature: dict) -> None:
        self.features.append(feature)

    def of_kind(self, kind: str) -> List[dict]:
        return [f for f in self.features if f["properties"].get("kind") == kind]

    def to_feature_collection(self) -> dict:
        return {"type": "FeatureCollection", "features": list(self.features)}


class MapWidget:
    """Base class for one map instance.

    Subclasses implement the ``_on_*`` hooks to talk to the actual view.
    The base class enforces the lifecycle: create once, become ready once,
    write layers only while ready, dispose once.
    """

    def __init__(self, widget_id: Optional[str] = None):
        self.widget_id = widget_id or f"map_{secrets.token_urlsafe(8)}"
        self.camera: Optional[CameraOptions] = None
        self.is_created = False
        self.is_ready = False
        self.is_disposed = False
        self._ready_event = asyncio.Event()
        self._layer: Optional[DataLayer] = None

    # -- hooks --------------------------------------------------------------
    def _on_create(self, camera: CameraOptions) -> None:
        raise NotImplementedError

    def _on_layer(self, layer: DataLayer) -> None:
        raise NotImplementedError

    def _on_dispose(self) -> None:
        raise NotImplementedError

    # -- lifecycle ----------------------------------------------------------
    async def create(self, camera: CameraOptions) -> None:
        if self.is_disposed:
            raise WidgetLifecycleError(f"Widget {self.widget_id} is disposed")
        if self.is_created:
            raise WidgetLifecycleError(f"Widget {self.widget_id} already created")
        self.camera = camera
        self.is_created = True
        self._on_create(camera)

    def mark_ready(self) -> None:
        """Called when the view reports that initialization finished."""
        if self.is_disposed or not self.is_created:
            logger.debug(f"Ignoring ready signal for widget {self.widget_id}")
            return
        self.is_ready = True
        self._ready_event.set()

    async def wait_ready(self) -> None:
        await self._ready_event.wait()
        if self.is_disposed:
            raise WidgetLifecycleError(f"Widget {self.widget_id} disposed before it became ready")

    def new_data_layer(self) -> DataLayer:
        """Drop the current data layer and start an empty one."""
        self._require_ready()
        self._layer = DataLayer(self.widget_id)
        return self._layer

    def publish(self, layer: DataLayer) -> None:
        self._require_ready()
        if layer is not self._layer:
            raise WidgetLifecycleError("Only the widget's current data layer can be published")
        self._on_layer(layer)

    def dispose(self) -> None:
        if self.is_disposed:
            raise WidgetLifecycleError(f"Widget {self.widget_id} already disposed")
        self.is_disposed = True
        self.is_ready = False
        self._layer = None
        # Wake anyone still waiting for readiness
        self._ready_event.set()
        if self.is_created:
            self._on_dispose()

    def _require_ready(self) -> None:
        if self.is_disposed or not self.is_ready:
            raise WidgetLifecycleError(f"Widget {self.widget_id} is not ready")


class SocketIOMapWidget(MapWidget):
    """A widget living in a browser tab, driven over Socket.IO."""

    def __init__(self, socketio, sid: str, namespace: str, widget_id: Optional[str] = None):
        super().__init__(widget_id)
        self.socketio = socketio
        self.sid = sid
        self.namespace = namespace

    def _emit(self, event: str, data: dict) -> None:
        try:
            self.socketio.emit(event, data, room=self.sid, namespace=self.namespace)
        except Exception as e:
            logger.error(f"Failed to emit {event} for widget {self.widget_id}: {e}")

    def _on_create(self, camera: CameraOptions) -> None:
        logger.info(f"🗺️ Creating map widget {self.widget_id} for client {self.sid}")
        self._emit("map_create", {"widget_id": self.widget_id, "camera": camera.to_dict()})

    def _on_layer(self, layer: DataLayer) -> None:
        self._emit(
            "map_layer",
            {"widget_id": self.widget_id, "features": layer.to_feature_collection()},
        )

    def _on_dispose(self) -> None:
        logger.info(f"Disposing map widget {self.widget_id} for client {self.sid}")
        self._emit("map_dispose", {"widget_id": self.widget_id})


__all__ = ["CameraOptions", "DataLayer", "MapWidget", "SocketIOMapWidget"]
