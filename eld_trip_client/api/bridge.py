# eld_trip_client/api/bridge.py
"""Normalize trip data from a fresh submission or a history record.

Both entry points produce a :class:`TripView`, so the map and overlay layers
never need to know where a plan came from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from eld_trip_client.api.config import get_map_view_config
from eld_trip_client.api.errors import InputValidationError
from eld_trip_client.api.models import (
    WAYPOINT_ORDER,
    DriverInfo,
    LocationInput,
    TripPlanResult,
    Waypoints,
)

logger = logging.getLogger(__name__)

# Fields of a history record's ``trip_plan`` that make up the result
_TRIP_PLAN_FIELDS = (
    "total_distance_miles",
    "total_driving_hours",
    "estimated_total_hours",
    "schedule",
    "daily_logs",
    "hos_compliance",
    "summary",
    "weekly_hours",
    "route_data",
)


@dataclass(frozen=True)
class TripView:
    """Everything the results view renders: the plan plus who/where it is for."""

    result: TripPlanResult
    locations: Tuple[LocationInput, LocationInput, LocationInput]
    driver: DriverInfo
    current_cycle_used: float = 0.0

    @property
    def waypoints(self) -> Waypoints:
        return tuple(location.coordinate for location in self.locations)

    def to_dict(self) -> dict:
        return {
            "result": self.result.to_dict(),
            "waypoints": {
                field.value: location.to_wire()
                for field, location in zip(WAYPOINT_ORDER, self.locations)
            },
            "driver": self.driver.to_wire(),
            "current_cycle_used": self.current_cycle_used,
        }


def from_submission(payload: Dict[str, Any]) -> TripPlanResult:
    """A planner response is already in canonical wire shape."""
    return TripPlanResult.from_dict(payload)


def view_from_submission(
    payload: Dict[str, Any],
    locations: Tuple[LocationInput, LocationInput, LocationInput],
    driver: DriverInfo,
    current_cycle_used: float,
) -> TripView:
    return TripView(
        result=from_submission(payload),
        locations=tuple(locations),
        driver=driver,
        current_cycle_used=float(current_cycle_used),
    )


def from_history_record(record: Dict[str, Any], placeholder: Optional[str] = None) -> TripView:
    """Map a persisted record onto the same shapes a fresh submission yields.

    Missing driver/carrier fields are replaced by ``placeholder`` (``N/A``
    unless configured otherwise).
    """
    if placeholder is None:
        placeholder = get_map_view_config()["driver_placeholder"]
    if not isinstance(record, dict):
        raise InputValidationError("History record must be an object")

    trip_plan = record.get("trip_plan")
    if not isinstance(trip_plan, dict):
        raise InputValidationError("History record has no trip_plan")

    payload = {name: trip_plan.get(name) for name in _TRIP_PLAN_FIELDS}
    payload["trip_id"] = record.get("_id") or trip_plan.get("trip_id") or ""
    result = TripPlanResult.from_dict(payload)

    try:
        locations = tuple(
            LocationInput.from_wire(record[f"{field.value}_location"]) for field in WAYPOINT_ORDER
        )
    except KeyError as exc:
        raise InputValidationError(f"History record missing {exc}") from None

    driver_info = record.get("driver_info") or {}
    if not isinstance(driver_info, dict):
        raise InputValidationError("History record driver_info must be an object")
    driver = DriverInfo(
        **{name: driver_info.get(name) or placeholder for name in DriverInfo.FIELDS}
    )

    logger.debug(f"Loaded history record {result.trip_id} with {len(result.schedule)} schedule items")
    return TripView(
        result=result,
        locations=locations,
        driver=driver,
        current_cycle_used=float(record.get("current_cycle_used") or 0.0),
    )


def to_history_record(view: TripView, created_at: Optional[datetime] = None) -> Dict[str, Any]:
    """The persisted shape of a view, as the planning service stores it."""
    plan = view.result.to_dict()
    record = {
        "_id": view.result.trip_id,
        "created_at": (created_at or datetime.now()).isoformat(),
        "current_cycle_used": view.current_cycle_used,
        "driver_info": view.driver.to_wire(),
        "trip_plan": {name: plan[name] for name in _TRIP_PLAN_FIELDS if name in plan},
    }
    for field, location in zip(WAYPOINT_ORDER, view.locations):
        record[f"{field.value}_location"] = location.to_wire()
    return record


__all__ = [
    "TripView",
    "from_submission",
    "view_from_submission",
    "from_history_record",
    "to_history_record",
]
