# eld_trip_client/api/services/search_service.py
"""Debounced address search for the three waypoint fields.

Each field has its own :class:`SearchSession`.  A keystroke restarts that
field's quiet-period timer; only the last keystroke of a burst issues a
geocode request.  Every issued request gets the next sequence number for
its field, and a response is applied only while its number is still the
field's latest.  Geocoder failures leave the field with no suggestions.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from eld_trip_client.api.config import get_search_config
from eld_trip_client.api.errors import InputValidationError
from eld_trip_client.api.geocoding import Geocoder
from eld_trip_client.api.models import (
    WAYPOINT_ORDER,
    GeocodeCandidate,
    LocationField,
    LocationInput,
)
from eld_trip_client.api.services.form_service import TripForm

logger = logging.getLogger(__name__)


@dataclass
class SearchSession:
    """Search state for one location field."""

    query: str = ""
    pending_request_id: int = 0
    candidates: Tuple[GeocodeCandidate, ...] = ()
    suggestions_visible: bool = False
    # Deferred request waiting out the quiet period
    timer: Optional[asyncio.Task] = field(default=None, repr=False, compare=False)

    def clear_suggestions(self) -> None:
        self.candidates = ()
        self.suggestions_visible = False

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "candidates": [c.to_dict() for c in self.candidates],
            "visible": self.suggestions_visible,
        }


UpdateCallback = Callable[[LocationField, SearchSession], None]


class DebouncedSearch:
    """Turns keystrokes into geocode requests, one field at a time.

    Must be driven from the event loop thread.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        form: TripForm,
        debounce_seconds: Optional[float] = None,
        min_query_length: Optional[int] = None,
        result_limit: Optional[int] = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        config = get_search_config()
        self.geocoder = geocoder
        self.form = form
        self.debounce_seconds = config["debounce_seconds"] if debounce_seconds is None else debounce_seconds
        self.min_query_length = config["min_query_length"] if min_query_length is None else min_query_length
        self.result_limit = config["result_limit"] if result_limit is None else result_limit
        self.on_update = on_update
        self.sessions: Dict[LocationField, SearchSession] = {
            f: SearchSession() for f in WAYPOINT_ORDER
        }
        self.requests_issued = 0

    def session(self, field: LocationField) -> SearchSession:
        return self.sessions[LocationField.parse(field)]

    # ------------------------------------------------------------------
    # Keystrokes
    # ------------------------------------------------------------------

    def on_query_change(self, field: LocationField, text: str) -> None:
        """Record ``text`` for ``field`` and (re)start its quiet period."""
        field = LocationField.parse(field)
        session = self.sessions[field]
        text = text or ""
        session.query = text
        self._cancel_timer(session)

        if len(text) < self.min_query_length:
            # Anything already in flight for this field is now stale
            session.pending_request_id += 1
            session.clear_suggestions()
            self._notify(field, session)
            return

        session.timer = asyncio.get_running_loop().create_task(
            self._search_after_quiet_period(field, text)
        )

    async def _search_after_quiet_period(self, field: LocationField, text: str) -> None:
        try:
            await asyncio.sleep(self.debounce_seconds)
        except asyncio.CancelledError:
            logger.debug(f"Search for '{text}' in {field.value} superseded before sending")
            raise

        session = self.sessions[field]
        session.timer = None
        session.pending_request_id += 1
        request_id = session.pending_request_id
        self.requests_issued += 1
        logger.debug(f"Geocode request #{request_id} for {field.value}: '{text}'")

        try:
            candidates = await self.geocoder.search(text, limit=self.result_limit)
        except Exception as e:
            # Search is advisory: failures just mean no suggestions
            logger.warning(f"Geocoder error for {field.value} '{text}': {e}")
            candidates = []

        self._apply(field, request_id, candidates)

    def _apply(self, field: LocationField, request_id: int, candidates: List[GeocodeCandidate]) -> bool:
        session = self.sessions[field]
        if request_id != session.pending_request_id:
            logger.debug(
                f"Discarding stale response #{request_id} for {field.value} "
                f"(latest is #{session.pending_request_id})"
            )
            return False

        session.candidates = tuple(candidates)
        session.suggestions_visible = bool(candidates)
        self._notify(field, session)
        return True

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_candidate(self, field: LocationField, candidate: GeocodeCandidate) -> LocationInput:
        """Commit ``candidate`` as the field's location and close its suggestions."""
        field = LocationField.parse(field)
        session = self.sessions[field]
        location = LocationInput.from_candidate(candidate)
        self.form.commit_location(field, location)

        self._cancel_timer(session)
        session.pending_request_id += 1
        session.query = location.address
        session.clear_suggestions()
        self._notify(field, session)
        logger.info(f"Selected {field.value} location: {location.address}")
        return location

    def select_index(self, field: LocationField, index: int) -> LocationInput:
        session = self.session(field)
        try:
            candidate = session.candidates[int(index)]
        except (IndexError, TypeError, ValueError):
            raise InputValidationError(f"No suggestion #{index} for {field}") from None
        return self.select_candidate(field, candidate)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def cancel_all(self) -> None:
        """Drop every pending timer and invalidate in-flight responses."""
        for session in self.sessions.values():
            self._cancel_timer(session)
            session.pending_request_id += 1

    @staticmethod
    def _cancel_timer(session: SearchSession) -> None:
        if session.timer is not None and not session.timer.done():
            session.timer.cancel()
        session.timer = None

    def _notify(self, field: LocationField, session: SearchSession) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(field, session)
        except Exception as exc:
            logger.exception("Search update callback failed: %s", exc)


__all__ = ["SearchSession", "DebouncedSearch"]
