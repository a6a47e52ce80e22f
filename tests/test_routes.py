import httpx
import pytest
from flask import Flask

from conftest import history_record
from eld_trip_client.api.planner import PlannerClient
from eld_trip_client.routes.travel import create_trips_blueprint


class PlannerStub:
    """Routes planner requests to canned responses by (method, path)."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, response):
        self.routes[(method, path)] = response

    def __call__(self, request):
        self.requests.append(request)
        response = self.routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"error": "Not found"})
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def stub():
    return PlannerStub()


@pytest.fixture
def client(stub, loop_thread):
    planner = PlannerClient(base_url="http://planner.test/api", transport=httpx.MockTransport(stub))
    app = Flask(__name__)
    app.register_blueprint(create_trips_blueprint(planner=planner, loop_thread=loop_thread))
    return app.test_client()


PLAN_BODY = {
    "current_location": {"lat": 39.95, "lon": -75.16, "address": "Philadelphia, PA"},
    "pickup_location": {"lat": 40.71, "lon": -74.0, "address": "New York, NY"},
    "dropoff_location": {"lat": 42.36, "lon": -71.06, "address": "Boston, MA"},
    "current_cycle_used": 20,
    "driver_name": "Sam",
    "carrier_name": "Acme Freight",
    "main_office": "Philadelphia, PA",
    "vehicle_number": "T-100",
}


def test_config_requires_key(client, monkeypatch):
    monkeypatch.setenv("MAP_PROVIDER", "azure")
    monkeypatch.delenv("AZURE_MAPS_KEY", raising=False)

    assert client.get("/trips/api/config").status_code == 500


def test_config_returns_key(client, monkeypatch):
    monkeypatch.setenv("MAP_PROVIDER", "azure")
    monkeypatch.setenv("AZURE_MAPS_KEY", "azure-key")

    data = client.get("/trips/api/config").get_json()

    assert data["provider"] == "azure"
    assert data["map_key"] == "azure-key"


def test_plan_returns_normalized_result(client, stub, plan_payload):
    stub.add("POST", "/api/trips/plan/", httpx.Response(200, json=plan_payload))

    response = client.post("/trips/api/plan", json=PLAN_BODY)

    assert response.status_code == 200
    data = response.get_json()
    assert data["trip_id"] == "trip-123"
    assert len(data["schedule"]) == 5
    assert data["schedule"][0]["start_time"] == "2024-05-01T08:00:00+00:00"


def test_plan_with_missing_fields_is_rejected_locally(client, stub):
    body = dict(PLAN_BODY)
    del body["dropoff_location"]

    response = client.post("/trips/api/plan", json=body)

    assert response.status_code == 400
    assert "dropoff" in response.get_json()["error"]
    assert stub.requests == []


def test_plan_with_out_of_range_cycle_is_rejected(client):
    response = client.post("/trips/api/plan", json={**PLAN_BODY, "current_cycle_used": 71})
    assert response.status_code == 400


def test_planner_validation_error_passes_through(client, stub):
    stub.add("POST", "/api/trips/plan/", httpx.Response(400, json={"error": "Route too long"}))

    response = client.post("/trips/api/plan", json=PLAN_BODY)

    assert response.status_code == 400
    assert response.get_json() == {"error": "Route too long"}


def test_planner_server_error_is_bad_gateway(client, stub):
    stub.add("POST", "/api/trips/plan/", httpx.Response(500, text="boom"))

    response = client.post("/trips/api/plan", json=PLAN_BODY)

    assert response.status_code == 502
    assert response.get_json() == {"error": "Failed to calculate trip plan"}


def test_unreachable_planner_is_unavailable(client, stub):
    stub.add("GET", "/api/trips/list/", httpx.ConnectError("refused"))

    assert client.get("/trips/api/history").status_code == 503


def test_history_list(client, stub):
    stub.add("GET", "/api/trips/list/", httpx.Response(200, json={"trips": [{"_id": "a"}]}))

    response = client.get("/trips/api/history?limit=5")

    assert response.get_json() == {"trips": [{"_id": "a"}]}
    assert stub.requests[0].url.params["limit"] == "5"


def test_history_trip_is_normalized(client, stub, plan_payload):
    stub.add("GET", "/api/trips/trip-123/", httpx.Response(200, json=history_record(plan_payload)))

    data = client.get("/trips/api/history/trip-123").get_json()

    assert data["result"]["trip_id"] == "trip-123"
    assert data["driver"]["carrier_name"] == "N/A"
    assert data["waypoints"]["dropoff"]["address"] == "42.36, -71.06"


def test_delete_trip(client, stub):
    stub.add("DELETE", "/api/trips/a/delete/", httpx.Response(200, json={"deleted": True}))

    assert client.delete("/trips/api/history/a").get_json() == {"deleted": "a"}


def test_clear_history(client, stub):
    stub.add("GET", "/api/trips/list/", httpx.Response(200, json={"trips": [{"_id": "a"}, {"_id": "b"}]}))
    stub.add("DELETE", "/api/trips/a/delete/", httpx.Response(200, json={}))
    stub.add("DELETE", "/api/trips/b/delete/", httpx.Response(200, json={}))

    assert client.delete("/trips/api/history").get_json() == {"deleted": 2}


def test_eld_pdf_download(client, stub):
    stub.add("GET", "/api/trips/trip-123/eld-pdf/", httpx.Response(200, content=b"%PDF-1.4"))

    response = client.get("/trips/api/history/trip-123/eld-pdf")

    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data == b"%PDF-1.4"
    assert "ELD_Logs_trip-123_" in response.headers["Content-Disposition"]


def test_health_reports_planner_down(client, stub):
    data = client.get("/trips/health").get_json()

    assert data["status"] == "ok"
    assert data["planner"] == "unavailable"


def test_health_reports_planner_up(client, stub):
    stub.add("GET", "/api/health/", httpx.Response(200, json={"status": "healthy"}))

    data = client.get("/trips/health").get_json()

    assert data["planner"] == "ok"
    assert data["planner_details"] == {"status": "healthy"}


def test_malformed_history_record_returns_json_error(client, stub, plan_payload):
    record = history_record(plan_payload)
    record["driver_info"] = "oops"
    stub.add("GET", "/api/trips/trip-123/", httpx.Response(200, json=record))

    response = client.get("/trips/api/history/trip-123")

    assert response.status_code == 400
    assert "driver_info" in response.get_json()["error"]


def test_malformed_plan_response_returns_json_error(client, stub, plan_payload):
    plan_payload["hos_compliance"] = ["bad"]
    stub.add("POST", "/api/trips/plan/", httpx.Response(200, json=plan_payload))

    response = client.post("/trips/api/plan", json=PLAN_BODY)

    assert response.status_code == 400
    assert "Malformed trip plan payload" in response.get_json()["error"]
