"""Registry of live connections and per-tick servicing of keep-alive sockets."""

import itertools
import logging
import socket
import time
from typing import Callable, Iterator, Optional

from httpengine.bootstrap.config import RECV_CHUNK_SIZE, EngineConfig
from httpengine.domain.connection import ConnectionRecord, ConnectionStats
from httpengine.domain.log_context import (
    ContextLoggerAdapter,
    bind_connection,
    clear_log_context,
)
from httpengine.pipeline.invocation import Handler
from httpengine.pipeline.parser import strip_leading_empty_lines
from httpengine.transport.exchange import serve_exchange

MANAGER_LOGGER = ContextLoggerAdapter(
    logging.getLogger("http_engine.transport.manager"), {}
)

_CONNECTION_IDS: Iterator[int] = itertools.count(1)

READY = "ready"
WAITING = "waiting"
PEER_CLOSED = "peer_closed"
SOCKET_ERROR = "socket_error"


def next_connection_id() -> str:
    """Return a process-wide unique connection identifier."""
    return f"conn-{next(_CONNECTION_IDS)}"


def _close_socket(client_socket: socket.socket) -> None:
    if client_socket.fileno() == -1:
        return
    try:
        client_socket.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    client_socket.close()


class ConnectionManager:
    """Owns every live ConnectionRecord for the lifetime of the server.

    All socket operations performed here are either non-blocking or bounded
    by ``socket_timeout`` so that one slow peer cannot stall the main loop.
    """

    def __init__(
        self, config: EngineConfig, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._config = config
        self._clock = clock
        self._connections: dict[str, ConnectionRecord] = {}
        self._created_at = clock()
        self._last_sweep = self._created_at
        self._retired_requests = 0

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def get(self, connection_id: str) -> Optional[ConnectionRecord]:
        return self._connections.get(connection_id)

    def register(
        self,
        client_socket: socket.socket,
        address: Optional[tuple[str, int]] = None,
    ) -> str:
        """Track a newly accepted socket and return its connection id."""
        now = self._clock()
        record = ConnectionRecord(
            id=next_connection_id(),
            socket=client_socket,
            address=address,
            created_at=now,
            last_activity=now,
        )
        self._connections[record.id] = record
        if MANAGER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            MANAGER_LOGGER.debug(
                "Connection registered",
                extra={
                    "event": "connection_registered",
                    "connection_id": record.id,
                    "client": record.client,
                    "total": len(self._connections),
                },
            )
        return record.id

    def evict(self, connection_id: str, reason: str = "closed") -> bool:
        """Close and forget a connection. Unknown ids are ignored."""
        record = self._connections.pop(connection_id, None)
        if record is None:
            return False
        self._retired_requests += record.requests_served
        _close_socket(record.socket)
        if MANAGER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            MANAGER_LOGGER.debug(
                "Connection evicted",
                extra={
                    "event": "connection_evicted",
                    "connection_id": connection_id,
                    "client": record.client,
                    "reason": reason,
                    "total": len(self._connections),
                },
            )
        return True

    def park(self, connection_id: str) -> None:
        """Move a connection into keep-alive wait until its next request arrives."""
        record = self._connections.get(connection_id)
        if record is None:
            return
        try:
            record.socket.setblocking(False)
        except OSError:
            self.evict(connection_id, SOCKET_ERROR)
            return
        record.keep_alive = True
        if MANAGER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            MANAGER_LOGGER.debug(
                "Connection waiting for next request",
                extra={"event": "keep_alive_parked", "connection_id": connection_id},
            )

    def _expiry_reason(self, record: ConnectionRecord, now: float) -> Optional[str]:
        if record.is_closed():
            return "socket_closed"
        if record.idle_for(now) > self._config.keep_alive_timeout:
            return "idle_timeout"
        return None

    @staticmethod
    def _peek_state(record: ConnectionRecord) -> str:
        """Classify a parked socket.

        Empty lines a client sends between requests are discarded here, so a
        stray CRLF after a request body never counts as a pending request.
        """
        record.buffer = strip_leading_empty_lines(record.buffer)
        if record.buffer:
            return READY
        try:
            data = record.socket.recv(RECV_CHUNK_SIZE, socket.MSG_PEEK)
        except BlockingIOError:
            return WAITING
        except OSError:
            return SOCKET_ERROR
        if not data:
            return PEER_CLOSED
        if strip_leading_empty_lines(data):
            return READY
        try:
            record.socket.recv(len(data))
        except OSError:
            return SOCKET_ERROR
        return WAITING

    def _serve_parked(self, record: ConnectionRecord, handler: Handler) -> bool:
        bind_connection(record.id)
        keep_alive = False
        try:
            record.socket.settimeout(self._config.socket_timeout)
            keep_alive = serve_exchange(record, handler, self._config, self._clock)
            if keep_alive:
                record.socket.setblocking(False)
        except (ConnectionError, TimeoutError, OSError) as error:
            MANAGER_LOGGER.info(
                "Keep-alive connection failed",
                extra={
                    "event": "connection_error",
                    "client": record.client,
                    "error_type": type(error).__name__,
                },
            )
            keep_alive = False
        except Exception as error:  # pylint: disable=broad-except
            MANAGER_LOGGER.error(
                "Unexpected error serving keep-alive connection",
                extra={
                    "event": "worker_error",
                    "client": record.client,
                    "error_type": type(error).__name__,
                    "error": str(error),
                },
                exc_info=True,
            )
            keep_alive = False
        finally:
            clear_log_context()
        return keep_alive

    def service_tick(self, handler: Handler) -> int:
        """Serve every parked connection that has a request waiting.

        Returns the number of requests handled during this pass.
        """
        now = self._clock()
        doomed: list[tuple[str, str]] = []
        served = 0

        for record in list(self._connections.values()):
            reason = self._expiry_reason(record, now)
            if reason is not None:
                doomed.append((record.id, reason))
                continue
            if not record.keep_alive:
                continue

            state = self._peek_state(record)
            if state == WAITING:
                continue
            if state != READY:
                doomed.append((record.id, state))
                continue

            served += 1
            if not self._serve_parked(record, handler):
                doomed.append((record.id, "closed"))

        for connection_id, reason in doomed:
            self.evict(connection_id, reason)
        return served

    def sweep(self) -> int:
        """Evict connections that are closed, idle too long, or hung up by the peer."""
        now = self._clock()
        self._last_sweep = now
        stale: list[tuple[str, str]] = []

        for record in list(self._connections.values()):
            reason = self._expiry_reason(record, now)
            if reason is None and record.keep_alive:
                state = self._peek_state(record)
                if state in (PEER_CLOSED, SOCKET_ERROR):
                    reason = state
            if reason is not None:
                stale.append((record.id, reason))

        for connection_id, reason in stale:
            self.evict(connection_id, reason)

        if stale:
            MANAGER_LOGGER.info(
                "Swept stale connections",
                extra={
                    "event": "stale_connections_swept",
                    "evicted": len(stale),
                    "total": len(self._connections),
                },
            )
        return len(stale)

    def maybe_sweep(self) -> int:
        """Run sweep() when sweep_interval has elapsed since the previous one."""
        if self._clock() - self._last_sweep < self._config.sweep_interval:
            return 0
        return self.sweep()

    def stats(self) -> ConnectionStats:
        records = list(self._connections.values())
        return ConnectionStats(
            total=len(records),
            keep_alive_count=sum(1 for record in records if record.keep_alive),
            uptime=self._clock() - self._created_at,
            requests_served=self._retired_requests
            + sum(record.requests_served for record in records),
        )

    def close_all(self) -> int:
        """Evict every connection; used at shutdown."""
        connection_ids = list(self._connections)
        for connection_id in connection_ids:
            self.evict(connection_id, "shutdown")
        return len(connection_ids)
