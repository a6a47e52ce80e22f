"""Shared data structures for trip planning results and map inputs.

Everything the search, map and overlay layers exchange lives here so that
the planner response, the history record and the form all meet on one
canonical shape.  Wire payloads are snake_case JSON; ``from_dict`` /
``to_dict`` convert between the wire and these dataclasses.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from eld_trip_client.api.errors import InputValidationError


class LocationField(str, Enum):
    """The three trip waypoints, in route order."""

    CURRENT = "current"
    PICKUP = "pickup"
    DROPOFF = "dropoff"

    @classmethod
    def parse(cls, value: Any) -> "LocationField":
        try:
            return cls(value)
        except ValueError:
            raise InputValidationError(f"Unknown location field: {value!r}") from None


WAYPOINT_ORDER: Tuple[LocationField, ...] = (
    LocationField.CURRENT,
    LocationField.PICKUP,
    LocationField.DROPOFF,
)


class DutyStatus(str, Enum):
    DRIVING = "driving"
    ON_DUTY = "on_duty"
    OFF_DUTY = "off_duty"
    SLEEPER_BERTH = "sleeper_berth"


FUELING_STOP_ACTIVITY = "Fueling Stop"


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point.  Validated on construction."""

    lat: float
    lon: float

    def __post_init__(self):
        try:
            lat = float(self.lat)
            lon = float(self.lon)
        except (TypeError, ValueError):
            raise InputValidationError(
                f"Coordinates must be numeric, got ({self.lat!r}, {self.lon!r})"
            ) from None
        if math.isnan(lat) or math.isnan(lon):
            raise InputValidationError("Coordinates must not be NaN")
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise InputValidationError(f"Coordinates out of range: ({lat}, {lon})")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lon", lon)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coordinate":
        if not isinstance(data, dict):
            raise InputValidationError(f"Expected a lat/lon object, got {data!r}")
        return cls(data.get("lat"), data.get("lon"))

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}

    def to_lon_lat(self) -> list:
        """GeoJSON position order."""
        return [self.lon, self.lat]

    def label(self) -> str:
        return f"{self.lat}, {self.lon}"


@dataclass(frozen=True)
class GeocodeCandidate:
    """A single geocoder hit.  Never persisted."""

    coordinate: Coordinate
    freeform_address: str
    country: str = ""

    @property
    def title(self) -> str:
        return self.freeform_address or self.coordinate.label()

    @property
    def subtitle(self) -> str:
        return f"{self.country} • {self.coordinate.lat:.4f}, {self.coordinate.lon:.4f}"

    def to_dict(self) -> dict:
        return {
            "coordinate": self.coordinate.to_dict(),
            "freeform_address": self.freeform_address,
            "country": self.country,
            "title": self.title,
            "subtitle": self.subtitle,
        }


@dataclass(frozen=True)
class LocationInput:
    """One committed waypoint of the form.  Replaced wholesale, never patched."""

    coordinate: Coordinate
    address: str
    raw_candidate: Optional[GeocodeCandidate] = None

    @classmethod
    def from_candidate(cls, candidate: GeocodeCandidate) -> "LocationInput":
        return cls(
            coordinate=candidate.coordinate,
            address=candidate.title,
            raw_candidate=candidate,
        )

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "LocationInput":
        """Build from a ``{lat, lon, address?}`` object; blank address shows as "lat, lon"."""
        coordinate = Coordinate.from_dict(data)
        return cls(coordinate=coordinate, address=data.get("address") or coordinate.label())

    def to_wire(self) -> dict:
        return {"lat": self.coordinate.lat, "lon": self.coordinate.lon, "address": self.address}


@dataclass(frozen=True)
class TripOptions:
    """Optional hours-of-service switches sent with a plan request.

    Defaults match a plain 70-hour/8-day property-carrying driver with no
    exceptions claimed.
    """

    weekly_mode: str = "70/8"
    use_split_sleeper: bool = False
    use_adverse_conditions: bool = False
    use_air_mile_exception: bool = False

    WEEKLY_MODES = ("70/8", "60/7")

    def __post_init__(self):
        if self.weekly_mode not in self.WEEKLY_MODES:
            raise InputValidationError(
                f"weekly_mode must be one of {', '.join(self.WEEKLY_MODES)}"
            )

    def to_wire(self) -> dict:
        return {
            "weekly_mode": self.weekly_mode,
            "use_split_sleeper": self.use_split_sleeper,
            "use_adverse_conditions": self.use_adverse_conditions,
            "use_air_mile_exception": self.use_air_mile_exception,
        }


@dataclass(frozen=True)
class DriverInfo:
    driver_name: str = ""
    carrier_name: str = ""
    main_office: str = ""
    vehicle_number: str = ""

    FIELDS = ("driver_name", "carrier_name", "main_office", "vehicle_number")

    def to_wire(self) -> dict:
        return {name: getattr(self, name) for name in self.FIELDS}


# ---------------------------------------------------------------------------
# Planner result
# ---------------------------------------------------------------------------


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise InputValidationError(f"Invalid timestamp: {value!r}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise InputValidationError(f"Invalid timestamp: {value!r}") from None


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise InputValidationError(f"Invalid date: {value!r}") from None


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


@dataclass(frozen=True)
class LocationInfo:
    city: Optional[str] = None
    state: Optional[str] = None

    def display(self) -> str:
        if self.city and self.state:
            return f"{self.city}, {self.state}"
        return self.state or "Location available"


@dataclass(frozen=True)
class ScheduleItem:
    start_time: datetime
    duty_status: DutyStatus
    activity: str
    description: str
    duration_hours: float
    distance_miles: Optional[float] = None
    location: Optional[Coordinate] = None
    split_sleeper_segment: Optional[int] = None
    location_info: Optional[LocationInfo] = None

    @property
    def is_overlay_candidate(self) -> bool:
        """Sleeper-berth rests and fueling stops get a marker on the map."""
        return (
            self.duty_status is DutyStatus.SLEEPER_BERTH
            or self.activity == FUELING_STOP_ACTIVITY
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleItem":
        try:
            duty_status = DutyStatus(data["duty_status"])
        except (KeyError, ValueError):
            raise InputValidationError(
                f"Invalid duty_status: {data.get('duty_status')!r}"
            ) from None
        location = data.get("location")
        location_info = data.get("location_info")
        return cls(
            start_time=_parse_timestamp(data.get("start_time")),
            duty_status=duty_status,
            activity=data.get("activity", ""),
            description=data.get("description", ""),
            duration_hours=float(data.get("duration_hours", 0.0)),
            distance_miles=_optional_float(data.get("distance_miles")),
            location=Coordinate.from_dict(location) if location else None,
            split_sleeper_segment=data.get("split_sleeper_segment"),
            location_info=(
                LocationInfo(city=location_info.get("city"), state=location_info.get("state"))
                if location_info
                else None
            ),
        )

    def to_dict(self) -> dict:
        data = {
            "start_time": self.start_time.isoformat(),
            "duty_status": self.duty_status.value,
            "activity": self.activity,
            "description": self.description,
            "duration_hours": self.duration_hours,
        }
        if self.distance_miles is not None:
            data["distance_miles"] = self.distance_miles
        if self.location is not None:
            data["location"] = self.location.to_dict()
        if self.split_sleeper_segment is not None:
            data["split_sleeper_segment"] = self.split_sleeper_segment
        if self.location_info is not None:
            data["location_info"] = {
                "city": self.location_info.city,
                "state": self.location_info.state,
            }
        return data


@dataclass(frozen=True)
class DailyLog:
    date: date
    total_miles: float
    total_driving: float
    total_on_duty: float
    total_off_duty: float
    total_sleeper: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyLog":
        return cls(
            date=_parse_date(data.get("date")),
            total_miles=float(data.get("total_miles", 0.0)),
            total_driving=float(data.get("total_driving", 0.0)),
            total_on_duty=float(data.get("total_on_duty", 0.0)),
            total_off_duty=float(data.get("total_off_duty", 0.0)),
            total_sleeper=float(data.get("total_sleeper", 0.0)),
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "total_miles": self.total_miles,
            "total_driving": self.total_driving,
            "total_on_duty": self.total_on_duty,
            "total_off_duty": self.total_off_duty,
            "total_sleeper": self.total_sleeper,
        }


@dataclass(frozen=True)
class HosCompliance:
    compliant: bool
    violations: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HosCompliance":
        return cls(
            compliant=bool(data.get("compliant", False)),
            violations=tuple(data.get("violations") or ()),
        )

    def to_dict(self) -> dict:
        return {"compliant": self.compliant, "violations": list(self.violations)}


@dataclass(frozen=True)
class TripSummary:
    rest_breaks: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TripSummary":
        data = dict(data or {})
        rest_breaks = int(data.pop("rest_breaks", 0))
        return cls(rest_breaks=rest_breaks, extra=data)

    def to_dict(self) -> dict:
        return {"rest_breaks": self.rest_breaks, **self.extra}


@dataclass(frozen=True)
class WeeklyHours:
    mode: str
    hours_used: float
    hours_remaining: float
    hours_after_trip: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeeklyHours":
        return cls(
            mode=data.get("mode", ""),
            hours_used=float(data.get("hours_used", 0.0)),
            hours_remaining=float(data.get("hours_remaining", 0.0)),
            hours_after_trip=_optional_float(data.get("hours_after_trip")),
        )

    def to_dict(self) -> dict:
        data = {
            "mode": self.mode,
            "hours_used": self.hours_used,
            "hours_remaining": self.hours_remaining,
        }
        if self.hours_after_trip is not None:
            data["hours_after_trip"] = self.hours_after_trip
        return data


@dataclass(frozen=True)
class TripPlanResult:
    """The read-only plan the map and overlay layers consume."""

    trip_id: str
    total_distance_miles: float
    total_driving_hours: float
    estimated_total_hours: float
    hos_compliance: HosCompliance
    schedule: Tuple[ScheduleItem, ...]
    daily_logs: Tuple[DailyLog, ...]
    summary: TripSummary
    weekly_hours: Optional[WeeklyHours] = None
    route_data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.schedule:
            raise InputValidationError("A trip plan must contain at least one schedule item")
        starts = [item.start_time for item in self.schedule]
        if any(later < earlier for earlier, later in zip(starts, starts[1:])):
            raise InputValidationError("Schedule items must be ordered by start_time")

    @property
    def overlay_stops(self) -> Tuple[ScheduleItem, ...]:
        return tuple(item for item in self.schedule if item.is_overlay_candidate)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TripPlanResult":
        if not isinstance(data, dict):
            raise InputValidationError("Trip plan payload must be an object")
        try:
            weekly_hours = data.get("weekly_hours")
            return cls(
                trip_id=str(data.get("trip_id") or ""),
                total_distance_miles=float(data["total_distance_miles"]),
                total_driving_hours=float(data["total_driving_hours"]),
                estimated_total_hours=float(data["estimated_total_hours"]),
                hos_compliance=HosCompliance.from_dict(data.get("hos_compliance") or {}),
                schedule=tuple(ScheduleItem.from_dict(item) for item in data.get("schedule") or ()),
                daily_logs=tuple(DailyLog.from_dict(log) for log in data.get("daily_logs") or ()),
                summary=TripSummary.from_dict(data.get("summary") or {}),
                weekly_hours=WeeklyHours.from_dict(weekly_hours) if weekly_hours else None,
                route_data=dict(data.get("route_data") or {}),
            )
        except KeyError as exc:
            raise InputValidationError(f"Trip plan payload missing field {exc}") from None
        except (AttributeError, TypeError, ValueError) as exc:
            # AttributeError: a nested object arrived as a list or string
            raise InputValidationError(f"Malformed trip plan payload: {exc}") from None

    def to_dict(self) -> dict:
        data = {
            "trip_id": self.trip_id,
            "total_distance_miles": self.total_distance_miles,
            "total_driving_hours": self.total_driving_hours,
            "estimated_total_hours": self.estimated_total_hours,
            "hos_compliance": self.hos_compliance.to_dict(),
            "schedule": [item.to_dict() for item in self.schedule],
            "daily_logs": [log.to_dict() for log in self.daily_logs],
            "summary": self.summary.to_dict(),
            "route_data": dict(self.route_data),
        }
        if self.weekly_hours is not None:
            data["weekly_hours"] = self.weekly_hours.to_dict()
        return data


# Waypoints are always [current, pickup, dropoff]
Waypoints = Tuple[Coordinate, Coordinate, Coordinate]
