# eld_trip_client/api/services/map_service.py
"""Lifecycle of the single map widget behind a results view."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from eld_trip_client.api.config import get_map_view_config
from eld_trip_client.api.errors import WidgetLifecycleError
from eld_trip_client.api.models import Coordinate, TripPlanResult, Waypoints
from eld_trip_client.api.runtime.widget import CameraOptions, DataLayer, MapWidget
from eld_trip_client.api.services.overlay_service import RouteOverlayRenderer

logger = logging.getLogger(__name__)


class MapState(str, Enum):
    ABSENT = "absent"
    CREATING = "creating"
    READY = "ready"
    DISPOSED = "disposed"


@dataclass
class MapViewState:
    """The live widget plus what it is showing."""

    widget: MapWidget
    waypoints: Optional[Waypoints]
    result: TripPlanResult
    data_layer: Optional[DataLayer] = None


def calculate_bounds(points: Sequence[Coordinate]) -> Tuple[float, float, float, float]:
    """Bounding box of ``points`` as (west, south, east, north)."""
    lats = [p.lat for p in points]
    lons = [p.lon for p in points]
    return (min(lons), min(lats), max(lons), max(lats))


class MapLifecycleController:
    """Owns the one map widget of a view.

    ``show`` moves Absent -> Creating -> Ready and then hands the widget to
    the overlay renderer.  A new result or new waypoints dispose the current
    widget before a fresh one is created.  ``close`` is the view teardown:
    the controller is Disposed for good.
    """

    def __init__(
        self,
        widget_factory: Callable[[], MapWidget],
        renderer: RouteOverlayRenderer,
        bounds_padding: Optional[int] = None,
        default_center: Optional[Tuple[float, float]] = None,
        default_zoom: Optional[float] = None,
        language: Optional[str] = None,
    ):
        config = get_map_view_config()
        self.widget_factory = widget_factory
        self.renderer = renderer
        self.bounds_padding = config["bounds_padding"] if bounds_padding is None else bounds_padding
        self.default_center = Coordinate(*(default_center or config["default_center"]))
        self.default_zoom = config["default_zoom"] if default_zoom is None else default_zoom
        self.language = language or config["language"]

        self._state = MapState.ABSENT
        self._widget: Optional[MapWidget] = None
        self._view: Optional[MapViewState] = None
        self._result: Optional[TripPlanResult] = None
        self._waypoints: Optional[Waypoints] = None
        self._generation = 0
        self.widgets_created = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> MapState:
        return self._state

    @property
    def view(self) -> Optional[MapViewState]:
        return self._view if self._state is MapState.READY else None

    @property
    def widget_id(self) -> Optional[str]:
        return self._widget.widget_id if self._widget else None

    def compute_camera(self, waypoints: Optional[Waypoints]) -> CameraOptions:
        """Fit all known waypoints with padding, or fall back to center/zoom."""
        if waypoints:
            return CameraOptions(
                bounds=calculate_bounds(waypoints),
                padding=self.bounds_padding,
                language=self.language,
            )
        return CameraOptions(center=self.default_center, zoom=self.default_zoom, language=self.language)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def show(
        self, result: Optional[TripPlanResult], waypoints: Optional[Waypoints] = None
    ) -> Optional[MapViewState]:
        """Make the widget reflect ``(result, waypoints)``.

        Returns:
            The ready view, or None if there is nothing to show or this call
            was superseded by a newer one
        """
        if self._state is MapState.DISPOSED:
            raise WidgetLifecycleError("Map view has been torn down")

        if result is None:
            self.dispose()
            return None

        if (
            result is self._result
            and waypoints is self._waypoints
            and self._state in (MapState.CREATING, MapState.READY)
        ):
            return self.view

        self.dispose()
        self._generation += 1
        generation = self._generation
        self._result = result
        self._waypoints = waypoints

        widget = self.widget_factory()
        self._widget = widget
        self._state = MapState.CREATING
        self.widgets_created += 1

        try:
            await widget.create(self.compute_camera(waypoints))
            await widget.wait_ready()
        except WidgetLifecycleError as e:
            logger.info(f"Widget {widget.widget_id} was replaced before it became ready: {e}")
            return None
        except BaseException:
            if generation == self._generation:
                self.dispose()
            raise

        if generation != self._generation:
            return None

        self._state = MapState.READY
        view = MapViewState(widget=widget, waypoints=waypoints, result=result)
        self._view = view
        logger.info(f"Map widget {widget.widget_id} ready for trip {result.trip_id}")

        try:
            await self.renderer.render(view, lambda: self._is_live(generation))
        except WidgetLifecycleError as e:
            # Disposed between the live check and the write
            logger.info(f"Overlay skipped for widget {widget.widget_id}: {e}")
        return self.view if generation == self._generation else None

    def widget_ready(self, widget_id: str) -> bool:
        """Forward the view's initialization signal to the matching widget."""
        if self._widget is None or self._widget.widget_id != widget_id:
            logger.debug(f"Ready signal for unknown widget {widget_id}")
            return False
        self._widget.mark_ready()
        return True

    def dispose(self) -> None:
        """Release the current widget, if any.  Safe to call repeatedly."""
        widget = self._widget
        self._widget = None
        self._view = None
        self._result = None
        self._waypoints = None
        # Anything still awaiting the old widget is now stale
        self._generation += 1
        if self._state is not MapState.DISPOSED:
            self._state = MapState.ABSENT

        if widget is None:
            return
        try:
            widget.dispose()
            logger.info(f"Disposed map widget {widget.widget_id}")
        except WidgetLifecycleError:
            logger.debug(f"Map widget {widget.widget_id} already disposed")

    def close(self) -> None:
        """Tear down the view.  No widget can be created afterwards."""
        self.dispose()
        self._state = MapState.DISPOSED

    def _is_live(self, generation: int) -> bool:
        return generation == self._generation and self._state is MapState.READY

    async def __aenter__(self) -> "MapLifecycleController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["MapState", "MapViewState", "MapLifecycleController", "calculate_bounds"]
