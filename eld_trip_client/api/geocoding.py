# eld_trip_client/api/geocoding.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import googlemaps
import httpx

from eld_trip_client.api.config import get_map_provider_config
from eld_trip_client.api.errors import GeocodingError, InputValidationError
from eld_trip_client.api.models import Coordinate, GeocodeCandidate

logger = logging.getLogger(__name__)

_gmaps: googlemaps.Client | None = None


def _get_google_client(api_key: str) -> googlemaps.Client:
    """Return a cached googlemaps.Client instance."""
    global _gmaps
    if _gmaps is None:
        if not api_key:
            raise GeocodingError("No Google Maps API key configured")
        logger.info(f"Initializing Google Maps client with key: {api_key[:6]}...")
        _gmaps = googlemaps.Client(key=api_key)
    return _gmaps


class Geocoder:
    """Resolves free text to a short ranked list of candidates.

    Implementations raise :class:`GeocodingError` on any failure; deciding
    whether to swallow it is the caller's business.
    """

    name = "base"

    async def search(self, query: str, limit: int = 5) -> List[GeocodeCandidate]:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Azure Maps
# ---------------------------------------------------------------------------


def parse_azure_search_results(payload: Dict[str, Any]) -> List[GeocodeCandidate]:
    """Turn an Azure Maps ``search/address`` payload into candidates.

    Only ``position.lat/lon``, ``address.freeformAddress`` and
    ``address.country`` are read.  Anything else about the payload is the
    provider's business.
    """
    if not isinstance(payload, dict):
        raise GeocodingError("Search payload is not an object")

    candidates = []
    for result in payload.get("results") or []:
        try:
            position = result["position"]
            address = result.get("address") or {}
            coordinate = Coordinate(position["lat"], position["lon"])
        except (KeyError, TypeError, InputValidationError) as exc:
            raise GeocodingError(f"Malformed search result: {exc}") from exc

        candidates.append(
            GeocodeCandidate(
                coordinate=coordinate,
                freeform_address=address.get("freeformAddress") or "",
                country=address.get("country") or "",
            )
        )
    return candidates


class AzureMapsGeocoder(Geocoder):
    """Address search against the Azure Maps REST API."""

    name = "azure"
    SEARCH_URL = "https://atlas.microsoft.com/search/address/json"

    def __init__(
        self,
        subscription_key: str,
        language: str = "en-US",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.subscription_key = subscription_key
        self.language = language
        self._transport = transport

    async def search(self, query: str, limit: int = 5) -> List[GeocodeCandidate]:
        params = {
            "api-version": "1.0",
            "subscription-key": self.subscription_key,
            "query": query,
            "limit": limit,
            "language": self.language,
        }
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(self.SEARCH_URL, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise GeocodingError(f"Azure Maps search failed: {exc}") from exc
        except ValueError as exc:
            raise GeocodingError(f"Azure Maps search returned invalid JSON: {exc}") from exc

        candidates = parse_azure_search_results(payload)[:limit]
        logger.debug(f"Geocoded '{query}' to {len(candidates)} candidates")
        return candidates


# ---------------------------------------------------------------------------
# Google Maps
# ---------------------------------------------------------------------------


def parse_google_geocode_results(results: List[Dict[str, Any]]) -> List[GeocodeCandidate]:
    """Turn ``googlemaps.Client.geocode`` output into candidates."""
    candidates = []
    for result in results or []:
        try:
            loc = result["geometry"]["location"]
            coordinate = Coordinate(loc["lat"], loc["lng"])
        except (KeyError, TypeError, InputValidationError) as exc:
            raise GeocodingError(f"Malformed geocode result: {exc}") from exc

        country = ""
        for component in result.get("address_components", []):
            if "country" in component.get("types", []):
                country = component.get("long_name", "")
                break

        candidates.append(
            GeocodeCandidate(
                coordinate=coordinate,
                freeform_address=result.get("formatted_address", ""),
                country=country,
            )
        )
    return candidates


class GoogleMapsGeocoder(Geocoder):
    """Address search through the ``googlemaps`` client.

    The client is synchronous, so calls run in a worker thread to keep the
    event loop free.
    """

    name = "google"

    def __init__(self, api_key: str = "", language: str = "en", client: googlemaps.Client | None = None):
        self.api_key = api_key
        self.language = language.split("-")[0]
        self._client = client

    def _client_or_default(self) -> googlemaps.Client:
        return self._client or _get_google_client(self.api_key)

    async def search(self, query: str, limit: int = 5) -> List[GeocodeCandidate]:
        try:
            client = self._client_or_default()
            results = await asyncio.to_thread(client.geocode, query, language=self.language)
        except GeocodingError:
            raise
        except Exception as exc:
            raise GeocodingError(f"Google geocoding failed for '{query}': {exc}") from exc

        if not results:
            logger.debug(f"No results found for place: {query}")
            return []
        return parse_google_geocode_results(results)[:limit]


def get_geocoder() -> Geocoder:
    """Build the geocoder selected by ``MAP_PROVIDER``."""
    cfg = get_map_provider_config()
    if cfg["provider"] == "google":
        return GoogleMapsGeocoder(cfg["google_maps_api_key"], language=cfg["language"])
    if not cfg["azure_maps_key"]:
        logger.error("No Azure Maps key found in config")
    return AzureMapsGeocoder(cfg["azure_maps_key"], language=cfg["language"])


# Re-export for clean imports elsewhere
__all__ = [
    "Geocoder",
    "AzureMapsGeocoder",
    "GoogleMapsGeocoder",
    "parse_azure_search_results",
    "parse_google_geocode_results",
    "get_geocoder",
]
