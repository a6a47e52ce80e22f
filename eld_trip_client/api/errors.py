# eld_trip_client/api/errors.py
"""Error taxonomy shared by the search, map and planner layers."""

from typing import Optional


class TripClientError(Exception):
    """Base class for all trip client errors."""


class InputValidationError(TripClientError):
    """Malformed coordinates or a missing required form field."""


class TransientNetworkError(TripClientError):
    """A geocode, route or planner call failed at the transport level."""


class GeocodingError(TransientNetworkError):
    """The geocoder failed or returned a payload we could not read."""


class RoutingError(TransientNetworkError):
    """The routing service failed or returned a payload we could not read."""


class PlannerError(TripClientError):
    """The planning service answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class WidgetLifecycleError(TripClientError):
    """A map widget operation was issued in the wrong lifecycle state."""


__all__ = [
    "TripClientError",
    "InputValidationError",
    "TransientNetworkError",
    "GeocodingError",
    "RoutingError",
    "PlannerError",
    "WidgetLifecycleError",
]
