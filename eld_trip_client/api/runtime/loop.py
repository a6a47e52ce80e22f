# eld_trip_client/api/runtime/loop.py
"""A single asyncio event loop running in a background thread.

Socket.IO handlers and Flask views run on worker threads; every search,
map and overlay operation runs on this one loop, so the core stays
single-threaded and cooperative.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class EventLoopThread:
    """Owns an event loop and the daemon thread that runs it."""

    def __init__(self, name: str = "trip-client-loop"):
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._started = threading.Event()
        self._lock = threading.Lock()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        self.start()
        return self._loop

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.is_running:
                return
            self._loop = asyncio.new_event_loop()
            self._started.clear()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        self._started.wait()
        logger.info("Event loop thread %s started", self.name)

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._started.set)
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the loop and join the worker thread."""
        with self._lock:
            if not self.is_running:
                return
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Event loop thread %s stopped", self.name)

    def submit(self, coro: Awaitable[Any]) -> Future:
        """Schedule a coroutine; returns a concurrent future."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Awaitable[Any], timeout: Optional[float] = None) -> Any:
        """Run a coroutine on the loop and block the calling thread for its result."""
        return self.submit(coro).result(timeout)

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        self.loop.call_soon_threadsafe(callback, *args)


# Global loop instance
_event_loop_thread = None


def get_event_loop_thread() -> EventLoopThread:
    """Get the global EventLoopThread instance."""
    global _event_loop_thread
    if _event_loop_thread is None:
        _event_loop_thread = EventLoopThread()
    return _event_loop_thread
