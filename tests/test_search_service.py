import asyncio

import pytest

from conftest import FakeGeocoder, candidate
from eld_trip_client.api.errors import InputValidationError
from eld_trip_client.api.models import Coordinate, LocationField
from eld_trip_client.api.services.form_service import TripForm
from eld_trip_client.api.services.search_service import DebouncedSearch

DEBOUNCE = 0.02


def make_search(geocoder, **kwargs):
    updates = []
    search = DebouncedSearch(
        geocoder,
        TripForm(),
        debounce_seconds=kwargs.pop("debounce_seconds", DEBOUNCE),
        min_query_length=3,
        result_limit=5,
        on_update=lambda field, session: updates.append((field, session.suggestions_visible)),
        **kwargs,
    )
    return search, updates


@pytest.mark.parametrize("text", ["", "1", "12"])
async def test_short_query_never_issues_request(text):
    geocoder = FakeGeocoder()
    search, _ = make_search(geocoder)

    search.on_query_change(LocationField.CURRENT, text)
    await asyncio.sleep(DEBOUNCE * 3)

    session = search.session(LocationField.CURRENT)
    assert geocoder.calls == []
    assert session.candidates == ()
    assert session.suggestions_visible is False
    assert session.query == text


async def test_burst_of_keystrokes_issues_one_request_for_final_text():
    geocoder = FakeGeocoder(responses={"123 Main S": [candidate(40.0, -75.0, "123 Main St")]})
    search, _ = make_search(geocoder)

    for text in ["123", "123 ", "123 M", "123 Main", "123 Main S"]:
        search.on_query_change(LocationField.PICKUP, text)
        await asyncio.sleep(DEBOUNCE / 10)
    await asyncio.sleep(DEBOUNCE * 3)

    assert geocoder.calls == ["123 Main S"]
    assert search.requests_issued == 1
    assert [c.freeform_address for c in search.session(LocationField.PICKUP).candidates] == ["123 Main St"]


async def test_stale_response_is_discarded():
    geocoder = FakeGeocoder(
        responses={
            "slow query": [candidate(10.0, 10.0, "Slow Result")],
            "fast query": [candidate(20.0, 20.0, "Fast Result")],
        },
        delays={"slow query": 0.1},
    )
    search, _ = make_search(geocoder, debounce_seconds=0)

    search.on_query_change(LocationField.DROPOFF, "slow query")
    await asyncio.sleep(0.01)
    search.on_query_change(LocationField.DROPOFF, "fast query")
    await asyncio.sleep(0.2)

    session = search.session(LocationField.DROPOFF)
    assert geocoder.calls == ["slow query", "fast query"]
    assert [c.freeform_address for c in session.candidates] == ["Fast Result"]
    assert session.pending_request_id == 2


async def test_short_query_invalidates_in_flight_request():
    geocoder = FakeGeocoder(
        responses={"Boston": [candidate(42.36, -71.06, "Boston, MA")]},
        delays={"Boston": 0.05},
    )
    search, _ = make_search(geocoder, debounce_seconds=0)

    search.on_query_change(LocationField.CURRENT, "Boston")
    await asyncio.sleep(0.01)
    search.on_query_change(LocationField.CURRENT, "Bo")
    await asyncio.sleep(0.1)

    session = search.session(LocationField.CURRENT)
    assert session.candidates == ()
    assert session.suggestions_visible is False


async def test_scenario_query_then_select_first_candidate():
    first = candidate(40.0, -75.0, "123 Main St, Springfield, PA")
    second = candidate(41.0, -76.0, "123 Main St, Lewisburg, PA")
    geocoder = FakeGeocoder(responses={"123 Main": [first, second]})
    search, updates = make_search(geocoder)

    search.on_query_change(LocationField.CURRENT, "123 Main")
    await asyncio.sleep(DEBOUNCE * 3)

    session = search.session(LocationField.CURRENT)
    assert len(session.candidates) == 2
    assert session.suggestions_visible is True
    assert updates[-1] == (LocationField.CURRENT, True)

    location = search.select_candidate(LocationField.CURRENT, session.candidates[0])

    assert location.coordinate == Coordinate(40.0, -75.0)
    assert location.address == first.freeform_address
    assert search.form.locations[LocationField.CURRENT] == location
    assert session.candidates == ()
    assert session.suggestions_visible is False


async def test_selecting_same_candidate_twice_is_idempotent():
    choice = candidate(40.0, -75.0, "123 Main St")
    search, _ = make_search(FakeGeocoder())

    first = search.select_candidate(LocationField.PICKUP, choice)
    state_after_first = (
        search.form.locations[LocationField.PICKUP],
        search.session(LocationField.PICKUP).candidates,
        search.session(LocationField.PICKUP).suggestions_visible,
        search.session(LocationField.PICKUP).query,
    )
    second = search.select_candidate(LocationField.PICKUP, choice)

    assert first == second
    assert state_after_first == (
        search.form.locations[LocationField.PICKUP],
        search.session(LocationField.PICKUP).candidates,
        search.session(LocationField.PICKUP).suggestions_visible,
        search.session(LocationField.PICKUP).query,
    )


async def test_selection_overwrites_previous_location():
    search, _ = make_search(FakeGeocoder())
    search.select_candidate(LocationField.PICKUP, candidate(1.0, 1.0, "Old"))
    search.select_candidate(LocationField.PICKUP, candidate(2.0, 2.0, "New"))

    location = search.form.locations[LocationField.PICKUP]
    assert location.coordinate == Coordinate(2.0, 2.0)
    assert location.address == "New"


async def test_blank_freeform_address_falls_back_to_coordinates():
    search, _ = make_search(FakeGeocoder())
    location = search.select_candidate(LocationField.CURRENT, candidate(40.5, -75.25, ""))
    assert location.address == "40.5, -75.25"


async def test_geocoder_error_is_swallowed():
    geocoder = FakeGeocoder(errors={"broken street"})
    search, _ = make_search(geocoder)

    search.on_query_change(LocationField.CURRENT, "broken street")
    await asyncio.sleep(DEBOUNCE * 3)

    session = search.session(LocationField.CURRENT)
    assert geocoder.calls == ["broken street"]
    assert session.candidates == ()
    assert session.suggestions_visible is False


async def test_fields_are_independent():
    geocoder = FakeGeocoder(
        responses={"Newark": [candidate(40.73, -74.17, "Newark, NJ")]},
        delays={"Newark": 0.05},
    )
    search, _ = make_search(geocoder, debounce_seconds=0)

    search.on_query_change(LocationField.PICKUP, "Newark")
    await asyncio.sleep(0.01)
    search.select_candidate(LocationField.CURRENT, candidate(39.95, -75.16, "Philadelphia"))
    await asyncio.sleep(0.1)

    pickup = search.session(LocationField.PICKUP)
    assert [c.freeform_address for c in pickup.candidates] == ["Newark, NJ"]
    assert pickup.suggestions_visible is True


async def test_selection_discards_late_response_for_same_field():
    geocoder = FakeGeocoder(
        responses={"Trenton": [candidate(40.22, -74.76, "Trenton, NJ")]},
        delays={"Trenton": 0.05},
    )
    search, _ = make_search(geocoder, debounce_seconds=0)

    search.on_query_change(LocationField.DROPOFF, "Trenton")
    await asyncio.sleep(0.01)
    search.select_candidate(LocationField.DROPOFF, candidate(42.36, -71.06, "Boston, MA"))
    await asyncio.sleep(0.1)

    assert search.session(LocationField.DROPOFF).suggestions_visible is False


async def test_select_index_out_of_range():
    search, _ = make_search(FakeGeocoder())
    with pytest.raises(InputValidationError):
        search.select_index(LocationField.CURRENT, 3)


async def test_cancel_all_stops_pending_timers():
    geocoder = FakeGeocoder()
    search, _ = make_search(geocoder)

    search.on_query_change(LocationField.CURRENT, "Pittsburgh")
    search.cancel_all()
    await asyncio.sleep(DEBOUNCE * 3)

    assert geocoder.calls == []


def test_unknown_field_rejected():
    search, _ = make_search(FakeGeocoder())
    with pytest.raises(InputValidationError):
        search.session("home")
