# eld_trip_client/api/planner.py
"""Async client for the remote trip planning service."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from eld_trip_client.api.config import get_planner_config
from eld_trip_client.api.errors import PlannerError, TransientNetworkError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response, default: str) -> str:
    """Pull the planner's ``error`` field out of a failed response, if any."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default


class PlannerClient:
    """Thin wrapper around the planning service REST API.

    A fresh ``httpx.AsyncClient`` is opened per call so the client can be
    shared between event loops.  Nothing is retried: every retry in this
    application is user initiated.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = get_planner_config()
        self.base_url = (base_url or config["base_url"]).rstrip("/")
        self.timeout = timeout if timeout is not None else config["timeout"]
        self._transport = transport

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, default_error: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            logger.error("Planner %s %s failed: %s", method, path, exc)
            raise TransientNetworkError(f"{default_error}: {exc}") from exc

        if response.is_error:
            message = _error_message(response, default_error)
            logger.error("Planner %s %s returned %d: %s", method, path, response.status_code, message)
            raise PlannerError(message, status_code=response.status_code)
        return response

    async def _json(self, method: str, path: str, default_error: str, **kwargs) -> Any:
        response = await self._request(method, path, default_error, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise PlannerError(f"{default_error}: invalid JSON response", response.status_code) from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def plan_trip(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Submit a plan request; returns the raw snake_case result."""
        logger.info("Submitting trip plan for driver %s", body.get("driver_name"))
        return await self._json("POST", "/trips/plan/", "Failed to calculate trip plan", json=body)

    async def get_trip(self, trip_id: str) -> Dict[str, Any]:
        return await self._json("GET", f"/trips/{trip_id}/", "Failed to load trip")

    async def list_trips(self, limit: int = 50) -> List[Dict[str, Any]]:
        payload = await self._json(
            "GET", "/trips/list/", "Failed to load trip history", params={"limit": limit}
        )
        return list(payload.get("trips") or []) if isinstance(payload, dict) else []

    async def delete_trip(self, trip_id: str) -> Any:
        response = await self._request("DELETE", f"/trips/{trip_id}/delete/", "Failed to delete trip")
        logger.info("Deleted trip %s", trip_id)
        try:
            return response.json() if response.content else None
        except ValueError:
            return None

    async def clear_history(self, limit: int = 50) -> int:
        """Delete every listed trip concurrently.  Returns how many were deleted."""
        trips = await self.list_trips(limit)
        trip_ids = [str(t.get("_id")) for t in trips if t.get("_id")]
        results = await asyncio.gather(
            *(self.delete_trip(trip_id) for trip_id in trip_ids), return_exceptions=True
        )
        failures = [r for r in results if isinstance(r, Exception)]
        if failures:
            logger.error("Clearing history: %d of %d deletions failed", len(failures), len(trip_ids))
            raise PlannerError("Failed to clear all history")
        logger.info("Cleared %d trips from history", len(trip_ids))
        return len(trip_ids)

    async def download_eld_pdf(self, trip_id: str) -> bytes:
        response = await self._request(
            "GET", f"/trips/{trip_id}/eld-pdf/", "Failed to download PDF"
        )
        return response.content

    async def health_check(self) -> Dict[str, Any]:
        return await self._json("GET", "/health/", "Planner health check failed")


_planner: PlannerClient | None = None


def get_planner_client() -> PlannerClient:
    """Get the global PlannerClient instance."""
    global _planner
    if _planner is None:
        _planner = PlannerClient()
    return _planner


__all__ = ["PlannerClient", "get_planner_client"]
