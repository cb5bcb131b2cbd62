"""Listening socket creation."""

import logging
import socket

from httpengine.bootstrap.config import EngineConfig
from httpengine.domain.errors import ListenerError
from httpengine.domain.log_context import ContextLoggerAdapter

SOCKET_LOGGER = ContextLoggerAdapter(logging.getLogger("http_engine.socket"), {})


def create_listening_socket(config: EngineConfig) -> socket.socket:
    """Bind and listen on the configured address, returning a non-blocking socket."""
    try:
        server_socket = socket.create_server(
            (config.host, config.port),
            backlog=config.backlog,
            reuse_port=hasattr(socket, "SO_REUSEPORT"),
        )
    except OSError as error:
        SOCKET_LOGGER.critical(
            "Failed to bind listening socket",
            extra={
                "event": "listener_error",
                "host": config.host,
                "port": config.port,
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        raise ListenerError(
            f"Failed to bind to {config.host}:{config.port}: {error}"
        ) from error
    server_socket.setblocking(False)
    return server_socket
