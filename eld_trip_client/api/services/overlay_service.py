# eld_trip_client/api/services/overlay_service.py
"""Service layer for the route and marker overlay."""

import logging
from typing import Callable, List, Optional, Sequence

from eld_trip_client.api.models import WAYPOINT_ORDER, Coordinate, ScheduleItem, TripPlanResult
from eld_trip_client.api.routing import RouteGeometry, RouteService

logger = logging.getLogger(__name__)

WAYPOINT_STYLES = {
    "current": {"title": "Current Location", "icon": "marker-blue"},
    "pickup": {"title": "Pickup Location", "icon": "marker-yellow"},
    "dropoff": {"title": "Dropoff Location", "icon": "marker-red"},
}
STOP_ICON = "pin-round-blue"

# Azure Maps LineLayer options
ROUTE_STROKE = {
    "strokeColor": [
        "interpolate",
        ["linear"],
        ["line-progress"],
        0, "#121b45",
        0.5, "#1a2859",
        1, "#2563eb",
    ],
    "strokeWidth": 6,
    "lineGradient": True,
}
FALLBACK_STROKE = {"strokeColor": "#121b45", "strokeWidth": 5}


def _point(coordinate: Coordinate, properties: dict) -> dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": coordinate.to_lon_lat()},
        "properties": properties,
    }


def waypoint_markers(waypoints: Sequence[Coordinate]) -> List[dict]:
    features = []
    for field, coordinate in zip(WAYPOINT_ORDER, waypoints):
        style = WAYPOINT_STYLES[field.value]
        features.append(_point(coordinate, {"kind": "waypoint", "role": field.value, **style}))
    return features


def route_line(route: RouteGeometry) -> dict:
    return {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": [p.to_lon_lat() for p in route.points],
        },
        "properties": {
            "kind": "route",
            "source": route.source,
            "style": FALLBACK_STROKE if route.is_fallback else ROUTE_STROKE,
        },
    }


def _stop_properties(item: ScheduleItem) -> dict:
    properties = {
        "kind": "stop",
        "title": item.activity,
        "icon": STOP_ICON,
        "duty_status": item.duty_status.value,
        "start_time": item.start_time.isoformat(),
    }
    if item.location_info is not None:
        properties["place"] = item.location_info.display()
    return properties


def stop_markers(result: TripPlanResult) -> List[dict]:
    """One marker per sleeper-berth rest or fueling stop that has a location."""
    return [
        _point(item.location, _stop_properties(item))
        for item in result.overlay_stops
        if item.location is not None
    ]


def build_features(
    result: TripPlanResult,
    waypoints: Optional[Sequence[Coordinate]],
    route: Optional[RouteGeometry],
) -> List[dict]:
    features = []
    if route is not None:
        features.append(route_line(route))
    if waypoints:
        features.extend(waypoint_markers(waypoints))
    features.extend(stop_markers(result))
    return features


class RouteOverlayRenderer:
    """Populates a ready widget's data layer from a plan and its waypoints.

    Never creates or disposes widgets.  Every render rebuilds the layer from
    scratch.
    """

    def __init__(self, route_service: RouteService):
        self.route_service = route_service

    async def render(self, view, is_current: Callable[[], bool] = lambda: True) -> bool:
        """Render ``view`` (a MapViewState) onto its widget.

        Args:
            view: The live map view to populate
            is_current: Checked after the route lookup; when it returns
                False the view was superseded and nothing is written

        Returns:
            True if the layer was written
        """
        route = None
        if view.waypoints:
            route = await self.route_service.route_geometry(view.waypoints)

        if not is_current():
            logger.debug(f"Skipping overlay for superseded widget {view.widget.widget_id}")
            return False

        layer = view.widget.new_data_layer()
        for feature in build_features(view.result, view.waypoints, route):
            layer.add(feature)
        view.data_layer = layer
        view.widget.publish(layer)

        logger.info(
            f"Rendered overlay on {view.widget.widget_id}: "
            f"{len(layer.of_kind('waypoint'))} waypoints, "
            f"{len(layer.of_kind('stop'))} stops, route={route.source if route else 'none'}"
        )
        return True


__all__ = ["RouteOverlayRenderer", "build_features"]
