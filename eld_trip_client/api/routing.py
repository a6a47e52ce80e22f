# eld_trip_client/api/routing.py
"""Driving-path lookup through the three trip waypoints."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import googlemaps
import googlemaps.convert
import httpx

from eld_trip_client.api.config import get_map_provider_config
from eld_trip_client.api.errors import InputValidationError, RoutingError
from eld_trip_client.api.geocoding import _get_google_client
from eld_trip_client.api.models import Coordinate

logger = logging.getLogger(__name__)

ROUTE_SOURCE_ROUTING = "routing"
ROUTE_SOURCE_STRAIGHT_LINE = "straight_line"


@dataclass(frozen=True)
class RouteGeometry:
    """An ordered polyline plus where it came from."""

    points: Tuple[Coordinate, ...]
    source: str

    @property
    def is_fallback(self) -> bool:
        return self.source == ROUTE_SOURCE_STRAIGHT_LINE


class Router:
    """Fetches the real driving path through waypoints, in order."""

    name = "base"

    async def directions(self, waypoints: Sequence[Coordinate]) -> List[Coordinate]:
        raise NotImplementedError


def parse_azure_route(payload: Dict[str, Any]) -> List[Coordinate]:
    """Flatten ``routes[0].legs[].points[]`` into one coordinate list."""
    if not isinstance(payload, dict):
        raise RoutingError("Route payload is not an object")
    routes = payload.get("routes") or []
    if not routes:
        return []
    points = []
    try:
        for leg in routes[0].get("legs", []):
            for point in leg.get("points", []):
                points.append(Coordinate(point["latitude"], point["longitude"]))
    except (KeyError, TypeError, AttributeError, InputValidationError) as exc:
        raise RoutingError(f"Malformed route payload: {exc}") from exc
    return points


class AzureMapsRouter(Router):
    name = "azure"
    DIRECTIONS_URL = "https://atlas.microsoft.com/route/directions/json"

    def __init__(self, subscription_key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.subscription_key = subscription_key
        self._transport = transport

    async def directions(self, waypoints: Sequence[Coordinate]) -> List[Coordinate]:
        query = ":".join(f"{wp.lat},{wp.lon}" for wp in waypoints)
        params = {
            "api-version": "1.0",
            "subscription-key": self.subscription_key,
            "query": query,
        }
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(self.DIRECTIONS_URL, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise RoutingError(f"Azure Maps route request failed: {exc}") from exc
        except ValueError as exc:
            raise RoutingError(f"Azure Maps route returned invalid JSON: {exc}") from exc
        return parse_azure_route(payload)


class GoogleMapsRouter(Router):
    """Directions through the ``googlemaps`` client, decoded from the overview polyline."""

    name = "google"

    def __init__(self, api_key: str = "", client: googlemaps.Client | None = None):
        self.api_key = api_key
        self._client = client

    async def directions(self, waypoints: Sequence[Coordinate]) -> List[Coordinate]:
        origin, *via, destination = [(wp.lat, wp.lon) for wp in waypoints]
        try:
            client = self._client or _get_google_client(self.api_key)
            routes = await asyncio.to_thread(
                client.directions, origin, destination, mode="driving", waypoints=via or None
            )
        except Exception as exc:
            raise RoutingError(f"Google directions failed: {exc}") from exc

        if not routes:
            return []
        try:
            encoded = routes[0]["overview_polyline"]["points"]
            decoded = googlemaps.convert.decode_polyline(encoded)
            return [Coordinate(p["lat"], p["lng"]) for p in decoded]
        except (KeyError, TypeError, InputValidationError) as exc:
            raise RoutingError(f"Malformed directions payload: {exc}") from exc


def straight_line(waypoints: Sequence[Coordinate]) -> RouteGeometry:
    """The fallback path: waypoints joined in order.  Cannot fail."""
    return RouteGeometry(points=tuple(waypoints), source=ROUTE_SOURCE_STRAIGHT_LINE)


class RouteService:
    """Real driving path when available, straight line otherwise."""

    def __init__(self, router: Router):
        self.router = router

    async def route_geometry(self, waypoints: Sequence[Coordinate]) -> RouteGeometry:
        try:
            points = await self.router.directions(waypoints)
        except Exception as e:
            logger.warning(f"Routing via {self.router.name} failed, using straight line: {e}")
            return straight_line(waypoints)

        if not points:
            logger.warning(f"Routing via {self.router.name} returned no path, using straight line")
            return straight_line(waypoints)

        logger.debug(f"Fetched route with {len(points)} points")
        return RouteGeometry(points=tuple(points), source=ROUTE_SOURCE_ROUTING)


def get_router() -> Router:
    """Build the router selected by ``MAP_PROVIDER``."""
    cfg = get_map_provider_config()
    if cfg["provider"] == "google":
        return GoogleMapsRouter(cfg["google_maps_api_key"])
    return AzureMapsRouter(cfg["azure_maps_key"])


__all__ = [
    "RouteGeometry",
    "Router",
    "AzureMapsRouter",
    "GoogleMapsRouter",
    "RouteService",
    "straight_line",
    "parse_azure_route",
    "get_router",
]
