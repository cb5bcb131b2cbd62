"""Bookkeeping value for one live client connection."""

import socket
from dataclasses import dataclass
from typing import Optional


@dataclass
class ConnectionRecord:
    """Per-connection state owned by the ConnectionManager."""

    id: str
    socket: socket.socket
    address: Optional[tuple[str, int]]
    created_at: float
    last_activity: float
    keep_alive: bool = False
    buffer: bytes = b""
    requests_served: int = 0

    @property
    def client(self) -> str:
        """Peer address as host:port, or "-" when it is unknown."""
        if not self.address:
            return "-"
        return f"{self.address[0]}:{self.address[1]}"

    def touch(self, now: float) -> None:
        """Record activity on the connection."""
        self.last_activity = now

    def idle_for(self, now: float) -> float:
        """Seconds elapsed since the last recorded activity."""
        return now - self.last_activity

    def is_closed(self) -> bool:
        """True once the underlying socket has been closed."""
        return self.socket.fileno() == -1


@dataclass(frozen=True)
class ConnectionStats:
    """Read-only snapshot of the manager's live connections."""

    total: int
    keep_alive_count: int
    uptime: float
    requests_served: int
