# eld_trip_client/api/services/form_service.py
"""Service layer for the trip input form."""

import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

from eld_trip_client.api.bridge import TripView, view_from_submission
from eld_trip_client.api.errors import InputValidationError
from eld_trip_client.api.models import (
    WAYPOINT_ORDER,
    DriverInfo,
    LocationField,
    LocationInput,
    TripOptions,
)
from eld_trip_client.api.planner import PlannerClient

logger = logging.getLogger(__name__)

MAX_CYCLE_HOURS = 70.0

_OPTION_FIELDS = ("weekly_mode", "use_split_sleeper", "use_adverse_conditions", "use_air_mile_exception")
_BOOL_TRUE = {"true", "1", "yes", "on"}


class TripForm:
    """State of one trip form: three waypoints, driver details and HOS options.

    Waypoints only change through :meth:`commit_location`, which the address
    search calls when the user picks a candidate.
    """

    def __init__(self):
        self.locations: Dict[LocationField, Optional[LocationInput]] = {
            field: None for field in WAYPOINT_ORDER
        }
        self.driver = DriverInfo()
        self.options = TripOptions()
        self.current_cycle_used: Optional[float] = None
        self.is_submitting = False

    @classmethod
    def from_wire(cls, body: Dict[str, Any]) -> "TripForm":
        """Rebuild a form from a plan request body (raw coordinates allowed)."""
        if not isinstance(body, dict):
            raise InputValidationError("Request body must be a JSON object")
        form = cls()
        for field in WAYPOINT_ORDER:
            location = body.get(f"{field.value}_location")
            if location:
                form.commit_location(field, LocationInput.from_wire(location))
        for name in (*DriverInfo.FIELDS, *_OPTION_FIELDS, "current_cycle_used"):
            if body.get(name) is not None:
                form.update_field(name, body[name])
        return form

    def commit_location(self, field: LocationField, location: LocationInput) -> None:
        self.locations[LocationField.parse(field)] = location

    def update_field(self, name: str, value: Any) -> None:
        """Update a driver, cycle or option field by its wire name.

        Args:
            name: Wire name, e.g. ``driver_name`` or ``use_split_sleeper``
            value: New value as received from the browser

        Raises:
            InputValidationError: If the name is unknown or the value invalid
        """
        if name in DriverInfo.FIELDS:
            self.driver = replace(self.driver, **{name: str(value or "").strip()})
        elif name == "current_cycle_used":
            self.current_cycle_used = self._parse_cycle(value)
        elif name in _OPTION_FIELDS:
            if name != "weekly_mode" and not isinstance(value, bool):
                value = str(value).lower() in _BOOL_TRUE
            self.options = replace(self.options, **{name: value})
        else:
            raise InputValidationError(f"Unknown form field: {name}")

    @staticmethod
    def _parse_cycle(value: Any) -> float:
        try:
            hours = float(value)
        except (TypeError, ValueError):
            raise InputValidationError("Current cycle used must be a number") from None
        if not 0 <= hours <= MAX_CYCLE_HOURS:
            raise InputValidationError(f"Current cycle used must be between 0 and {MAX_CYCLE_HOURS:g} hours")
        return hours

    def selected_locations(self) -> Tuple[LocationInput, LocationInput, LocationInput]:
        missing = [field.value for field, loc in self.locations.items() if loc is None]
        if missing:
            raise InputValidationError(f"Select a location for: {', '.join(missing)}")
        return tuple(self.locations[field] for field in WAYPOINT_ORDER)

    def build_request(self) -> Dict[str, Any]:
        """Build the plan request body.

        Raises:
            InputValidationError: If a location, the cycle hours or a driver field is missing
        """
        locations = self.selected_locations()
        if self.current_cycle_used is None:
            raise InputValidationError("Current cycle used is required")
        missing = [name for name in DriverInfo.FIELDS if not getattr(self.driver, name)]
        if missing:
            raise InputValidationError(f"Missing driver information: {', '.join(missing)}")

        body: Dict[str, Any] = {
            f"{field.value}_location": location.to_wire()
            for field, location in zip(WAYPOINT_ORDER, locations)
        }
        body["current_cycle_used"] = self.current_cycle_used
        body.update(self.driver.to_wire())
        body.update(self.options.to_wire())
        return body

    async def submit(self, planner: PlannerClient) -> TripView:
        """Submit the form to the planner.

        The form is left untouched on failure so the user can correct it
        and resubmit.

        Raises:
            InputValidationError: If the form is incomplete
            PlannerError: If the planner rejected the request
            TransientNetworkError: If the planner could not be reached
        """
        body = self.build_request()
        self.is_submitting = True
        try:
            payload = await planner.plan_trip(body)
        finally:
            self.is_submitting = False
        view = view_from_submission(
            payload, self.selected_locations(), self.driver, self.current_cycle_used
        )
        logger.info(f"Trip plan {view.result.trip_id} received with {len(view.result.schedule)} schedule items")
        return view

    def to_dict(self) -> Dict[str, Any]:
        return {
            "locations": {
                field.value: loc.to_wire() if loc else None for field, loc in self.locations.items()
            },
            "driver": self.driver.to_wire(),
            "options": self.options.to_wire(),
            "current_cycle_used": self.current_cycle_used,
        }


__all__ = ["TripForm"]
