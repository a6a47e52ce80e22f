import asyncio
import copy

import pytest

from eld_trip_client.api.errors import GeocodingError, RoutingError
from eld_trip_client.api.geocoding import Geocoder
from eld_trip_client.api.models import Coordinate, GeocodeCandidate, LocationInput, TripPlanResult
from eld_trip_client.api.routing import Router, RouteService
from eld_trip_client.api.runtime.loop import EventLoopThread
from eld_trip_client.api.runtime.widget import MapWidget
from eld_trip_client.api.services.map_service import MapLifecycleController
from eld_trip_client.api.services.overlay_service import RouteOverlayRenderer


class FakeWidget(MapWidget):
    """Records what would have been sent to the browser."""

    def __init__(self, auto_ready=True):
        super().__init__()
        self.auto_ready = auto_ready
        self.events = []
        self.published = []

    def _on_create(self, camera):
        self.events.append(("create", camera))
        if self.auto_ready:
            asyncio.get_running_loop().call_soon(self.mark_ready)

    def _on_layer(self, layer):
        self.events.append(("layer", layer))
        self.published.append(layer)

    def _on_dispose(self):
        self.events.append(("dispose", None))


class WidgetFactory:
    def __init__(self, auto_ready=True):
        self.auto_ready = auto_ready
        self.widgets = []

    def __call__(self):
        widget = FakeWidget(auto_ready=self.auto_ready)
        self.widgets.append(widget)
        return widget

    @property
    def live(self):
        return [w for w in self.widgets if not w.is_disposed]


class FakeGeocoder(Geocoder):
    name = "fake"

    def __init__(self, responses=None, delays=None, errors=None):
        self.responses = responses or {}
        self.delays = delays or {}
        self.errors = errors or set()
        self.calls = []

    async def search(self, query, limit=5):
        self.calls.append(query)
        await asyncio.sleep(self.delays.get(query, 0))
        if query in self.errors:
            raise GeocodingError(f"boom: {query}")
        return list(self.responses.get(query, []))[:limit]


class FakeRouter(Router):
    name = "fake"

    def __init__(self, points=None, error=False, delay=0):
        self.points = points or []
        self.error = error
        self.delay = delay
        self.calls = []

    async def directions(self, waypoints):
        self.calls.append(tuple(waypoints))
        await asyncio.sleep(self.delay)
        if self.error:
            raise RoutingError("routing down")
        return list(self.points)


def candidate(lat, lon, address, country="United States"):
    return GeocodeCandidate(Coordinate(lat, lon), address, country)


@pytest.fixture
def waypoints():
    return (Coordinate(39.95, -75.16), Coordinate(40.71, -74.0), Coordinate(42.36, -71.06))


@pytest.fixture
def locations(waypoints):
    return tuple(
        LocationInput(coordinate=c, address=a)
        for c, a in zip(waypoints, ["Philadelphia, PA", "New York, NY", "Boston, MA"])
    )


PLAN_PAYLOAD = {
    "trip_id": "trip-123",
    "total_distance_miles": 310.5,
    "total_driving_hours": 6.2,
    "estimated_total_hours": 19.75,
    "hos_compliance": {"compliant": True, "violations": []},
    "schedule": [
        {
            "start_time": "2024-05-01T08:00:00Z",
            "duty_status": "on_duty",
            "activity": "Pre-trip Inspection",
            "description": "Vehicle inspection",
            "duration_hours": 0.5,
        },
        {
            "start_time": "2024-05-01T08:30:00Z",
            "duty_status": "driving",
            "activity": "Driving",
            "description": "Drive to pickup",
            "duration_hours": 2.0,
            "distance_miles": 95.0,
        },
        {
            "start_time": "2024-05-01T10:30:00Z",
            "duty_status": "on_duty",
            "activity": "Fueling Stop",
            "description": "Fuel",
            "duration_hours": 0.5,
            "location": {"lat": 40.2, "lon": -74.7},
        },
        {
            "start_time": "2024-05-01T11:00:00Z",
            "duty_status": "sleeper_berth",
            "activity": "10-Hour Break",
            "description": "Required rest",
            "duration_hours": 10.0,
            "location": {"lat": 41.0, "lon": -74.0},
            "split_sleeper_segment": 1,
        },
        {
            "start_time": "2024-05-01T21:00:00Z",
            "duty_status": "off_duty",
            "activity": "Off Duty",
            "description": "No location on purpose",
            "duration_hours": 1.0,
        },
    ],
    "daily_logs": [
        {
            "date": "2024-05-01",
            "total_miles": 310.5,
            "total_driving": 6.2,
            "total_on_duty": 1.0,
            "total_off_duty": 1.0,
            "total_sleeper": 10.0,
        }
    ],
    "summary": {"rest_breaks": 1, "fuel_stops": 1},
    "weekly_hours": {"mode": "70/8", "hours_used": 20.0, "hours_remaining": 50.0, "hours_after_trip": 43.8},
}


@pytest.fixture
def plan_payload():
    return copy.deepcopy(PLAN_PAYLOAD)


@pytest.fixture
def plan_result(plan_payload):
    return TripPlanResult.from_dict(plan_payload)


@pytest.fixture
def widget_factory():
    return WidgetFactory()


@pytest.fixture
def router():
    return FakeRouter(points=[Coordinate(39.95, -75.16), Coordinate(40.5, -74.5), Coordinate(42.36, -71.06)])


@pytest.fixture
def loop_thread():
    thread = EventLoopThread(name="test-loop")
    thread.start()
    yield thread
    thread.stop()


def history_record(plan_payload):
    """A stored trip as the planner's history endpoint returns it."""
    plan = dict(plan_payload)
    trip_id = plan.pop("trip_id")
    return {
        "_id": trip_id,
        "created_at": "2024-05-01T07:55:00",
        "current_location": {"lat": 39.95, "lon": -75.16, "address": "Philadelphia, PA"},
        "pickup_location": {"lat": 40.71, "lon": -74.0, "address": "New York, NY"},
        "dropoff_location": {"lat": 42.36, "lon": -71.06},
        "current_cycle_used": 20,
        "driver_info": {"driver_name": "Dana Reyes", "carrier_name": ""},
        "trip_plan": plan,
    }


@pytest.fixture
def controller(widget_factory, router):
    return MapLifecycleController(
        widget_factory,
        RouteOverlayRenderer(RouteService(router)),
        bounds_padding=80,
        default_center=(39.8283, -98.5795),
        default_zoom=4,
    )
