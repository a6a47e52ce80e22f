from conftest import FakeRouter, FakeWidget
from eld_trip_client.api.models import TripPlanResult
from eld_trip_client.api.routing import RouteGeometry, RouteService
from eld_trip_client.api.runtime.widget import CameraOptions
from eld_trip_client.api.services.map_service import MapViewState
from eld_trip_client.api.services.overlay_service import (
    ROUTE_STROKE,
    STOP_ICON,
    RouteOverlayRenderer,
    build_features,
    stop_markers,
)


async def ready_widget():
    widget = FakeWidget(auto_ready=False)
    await widget.create(CameraOptions())
    widget.mark_ready()
    return widget


def test_build_features_order(plan_result, waypoints):
    route = RouteGeometry(points=tuple(waypoints), source="routing")

    features = build_features(plan_result, waypoints, route)

    kinds = [f["properties"]["kind"] for f in features]
    assert kinds == ["route", "waypoint", "waypoint", "waypoint", "stop", "stop"]
    assert features[0]["properties"]["style"] == ROUTE_STROKE


def test_stop_markers_only_for_located_overlay_candidates(plan_result):
    markers = stop_markers(plan_result)

    assert [m["properties"]["title"] for m in markers] == ["Fueling Stop", "10-Hour Break"]
    assert all(m["properties"]["icon"] == STOP_ICON for m in markers)
    assert markers[0]["geometry"]["coordinates"] == [-74.7, 40.2]


async def test_render_rebuilds_layer_from_scratch(plan_result, waypoints, router):
    widget = await ready_widget()
    view = MapViewState(widget=widget, waypoints=waypoints, result=plan_result)
    renderer = RouteOverlayRenderer(RouteService(router))

    assert await renderer.render(view)
    first_layer = view.data_layer
    assert await renderer.render(view)

    assert view.data_layer is not first_layer
    assert len(view.data_layer.features) == len(first_layer.features)
    assert len(widget.published) == 2


async def test_render_skips_superseded_view(plan_result, waypoints):
    widget = await ready_widget()
    view = MapViewState(widget=widget, waypoints=waypoints, result=plan_result)
    renderer = RouteOverlayRenderer(RouteService(FakeRouter(points=list(waypoints))))

    assert await renderer.render(view, is_current=lambda: False) is False
    assert widget.published == []
    assert view.data_layer is None


async def test_render_without_waypoints_skips_routing(plan_result):
    router = FakeRouter(points=[])
    widget = await ready_widget()
    view = MapViewState(widget=widget, waypoints=None, result=plan_result)

    await RouteOverlayRenderer(RouteService(router)).render(view)

    assert router.calls == []
    assert len(view.data_layer.of_kind("stop")) == 2


def test_stop_marker_carries_place_name(plan_payload):
    plan_payload["schedule"][3]["location_info"] = {"city": "Paramus", "state": "NJ"}

    markers = stop_markers(TripPlanResult.from_dict(plan_payload))

    assert "place" not in markers[0]["properties"]
    assert markers[1]["properties"]["place"] == "Paramus, NJ"
