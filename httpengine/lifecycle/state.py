"""Server lifecycle state management."""

import logging
import threading
import time
from typing import Optional

from httpengine.domain.log_context import ContextLoggerAdapter

LIFECYCLE_LOGGER = ContextLoggerAdapter(logging.getLogger("http_engine.lifecycle"), {})


class ServerLifecycle:
    """Tracks whether the main loop should keep running."""

    def __init__(self) -> None:
        self._stop_event = threading.Event()
        self.started_at = time.monotonic()

    def should_stop(self) -> bool:
        """Check if the main loop should exit at the end of the current tick."""
        return self._stop_event.is_set()

    def request_stop(self, reason: Optional[str] = None) -> None:
        """Ask the main loop to stop; safe to call from a signal handler."""
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        LIFECYCLE_LOGGER.info(
            "Shutdown requested",
            extra={"event": "shutdown_requested", "reason": reason or "-"},
        )

    def uptime(self) -> float:
        return time.monotonic() - self.started_at
