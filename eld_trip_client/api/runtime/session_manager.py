# eld_trip_client/api/runtime/session_manager.py
"""Lifecycle management for browser view sessions."""

import asyncio
import logging
import secrets
import threading
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from eld_trip_client.api.bridge import TripView, from_history_record
from eld_trip_client.api.config import get_view_session_config
from eld_trip_client.api.geocoding import Geocoder, get_geocoder
from eld_trip_client.api.planner import PlannerClient, get_planner_client
from eld_trip_client.api.routing import RouteService, get_router
from eld_trip_client.api.runtime.loop import EventLoopThread, get_event_loop_thread
from eld_trip_client.api.runtime.widget import MapWidget
from eld_trip_client.api.services.form_service import TripForm
from eld_trip_client.api.services.map_service import MapLifecycleController
from eld_trip_client.api.services.overlay_service import RouteOverlayRenderer
from eld_trip_client.api.services.search_service import DebouncedSearch, UpdateCallback

logger = logging.getLogger(__name__)


class ViewSession:
    """Everything one browser view owns: form, searches, map, current trip.

    All methods except the constructor run on the event loop thread.
    """

    def __init__(
        self,
        session_id: str,
        sid: str,
        widget_factory: Callable[[], MapWidget],
        geocoder: Geocoder,
        route_service: RouteService,
        planner: PlannerClient,
        on_search_update: Optional[UpdateCallback] = None,
    ):
        self.session_id = session_id
        self.sid = sid

        # Timestamps
        self.created_at = datetime.now()
        self.last_activity = datetime.now()

        # Components
        self.planner = planner
        self.form = TripForm()
        self.search = DebouncedSearch(geocoder, self.form, on_update=on_search_update)
        self.map = MapLifecycleController(widget_factory, RouteOverlayRenderer(route_service))

        # State
        self.trip_view: Optional[TripView] = None
        self._waypoints = None
        self._map_task: Optional[asyncio.Task] = None
        self.is_closed = False

        # Stats
        self.submission_count = 0
        self.history_views = 0

    def touch(self) -> None:
        self.last_activity = datetime.now()

    async def submit_trip(self) -> TripView:
        """Submit the form and start rendering the result."""
        self.submission_count += 1
        view = await self.form.submit(self.planner)
        self.show_trip(view)
        return view

    async def open_history_trip(self, trip_id: str) -> TripView:
        record = await self.planner.get_trip(trip_id)
        view = from_history_record(record)
        self.history_views += 1
        self.show_trip(view)
        return view

    def show_trip(self, view: TripView) -> None:
        """Make ``view`` the current trip; the map follows in the background."""
        self.trip_view = view
        self._waypoints = view.waypoints
        if self._map_task is not None and not self._map_task.done():
            self._map_task.cancel()
        self._map_task = asyncio.get_running_loop().create_task(
            self.map.show(view.result, self._waypoints)
        )
        self._map_task.add_done_callback(self._log_map_task)

    def _log_map_task(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Map update failed for session {self.session_id}: {exc}")

    def map_ready(self, widget_id: str) -> bool:
        return self.map.widget_ready(widget_id)

    def leave_view(self) -> None:
        """The user navigated away from the results view."""
        self.trip_view = None
        self._waypoints = None
        self.map.dispose()

    def close(self) -> None:
        if self.is_closed:
            return
        self.is_closed = True
        self.search.cancel_all()
        if self._map_task is not None and not self._map_task.done():
            self._map_task.cancel()
        self.map.close()


class ViewSessionManager:
    """Manages the view sessions of all connected browsers."""

    def __init__(
        self,
        loop_thread: Optional[EventLoopThread] = None,
        geocoder: Optional[Geocoder] = None,
        route_service: Optional[RouteService] = None,
        planner: Optional[PlannerClient] = None,
        start_cleanup: bool = True,
    ):
        self.config = get_view_session_config()
        self.loop_thread = loop_thread or get_event_loop_thread()
        self.geocoder = geocoder or get_geocoder()
        self.route_service = route_service or RouteService(get_router())
        self.planner = planner or get_planner_client()
        self.sessions: Dict[str, ViewSession] = {}

        # Thread safety
        self.lock = threading.RLock()

        if start_cleanup:
            self.cleanup_thread = threading.Thread(target=self._cleanup_loop, daemon=True)
            self.cleanup_thread.start()

        logger.info("ViewSessionManager initialized")

    def create_session(
        self,
        sid: str,
        widget_factory: Callable[[], MapWidget],
        on_search_update: Optional[UpdateCallback] = None,
    ) -> Optional[ViewSession]:
        """Create the view session for a newly connected client.

        Args:
            sid: Socket.IO session id of the client
            widget_factory: Builds map widgets bound to that client
            on_search_update: Called whenever a field's suggestions change

        Returns:
            ViewSession object or None if at capacity
        """
        with self.lock:
            existing = self.sessions.get(sid)
            if existing:
                logger.info(f"Reusing existing view session {existing.session_id} for {sid}")
                return existing

            if len(self.sessions) >= self.config["max_sessions"]:
                logger.warning("Maximum view sessions reached")
                return None

            session_id = f"view_{secrets.token_urlsafe(12)}"
            session = ViewSession(
                session_id,
                sid,
                widget_factory,
                self.geocoder,
                self.route_service,
                self.planner,
                on_search_update=on_search_update,
            )
            self.sessions[sid] = session
            logger.info(f"Created view session {session_id} for client {sid}")
            return session

    def get_session(self, sid: str) -> Optional[ViewSession]:
        with self.lock:
            session = self.sessions.get(sid)
            if session:
                session.touch()
            return session

    def remove_session(self, sid: str, reason: str = "manual") -> None:
        """Close and forget a client's view session."""
        with self.lock:
            session = self.sessions.pop(sid, None)
        if session is None:
            return

        self.loop_thread.call_soon(session.close)
        duration = (datetime.now() - session.created_at).total_seconds()
        logger.info(
            f"Removed view session {session.session_id} - "
            f"Reason: {reason}, Duration: {duration:.1f}s, "
            f"Submissions: {session.submission_count}, "
            f"Searches: {session.search.requests_issued}"
        )

    def run(self, coro, timeout: Optional[float] = None) -> Any:
        return self.loop_thread.run(coro, timeout)

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        self.loop_thread.call_soon(callback, *args)

    def get_stats(self) -> Dict[str, Any]:
        with self.lock:
            return {
                "total_sessions": len(self.sessions),
                "sessions_with_trip": sum(1 for s in self.sessions.values() if s.trip_view),
                "total_submissions": sum(s.submission_count for s in self.sessions.values()),
                "config": {
                    "max_sessions": self.config["max_sessions"],
                    "timeout_seconds": self.config["session_timeout_seconds"],
                },
            }

    def _cleanup_loop(self):
        """Background thread to clean up expired sessions."""
        while True:
            try:
                time.sleep(self.config["cleanup_interval_seconds"])
                self._cleanup_expired_sessions()
            except Exception as e:
                logger.error(f"Error in cleanup loop: {e}")

    def _cleanup_expired_sessions(self):
        """Remove sessions idle for longer than the timeout."""
        cutoff_time = datetime.now() - timedelta(seconds=self.config["session_timeout_seconds"])

        with self.lock:
            expired = [sid for sid, s in self.sessions.items() if s.last_activity < cutoff_time]

        for sid in expired:
            self.remove_session(sid, "timeout")

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired view sessions")
        return expired


# Global session manager instance
_session_manager = None


def get_session_manager() -> ViewSessionManager:
    """Get the global ViewSessionManager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = ViewSessionManager()
    return _session_manager
