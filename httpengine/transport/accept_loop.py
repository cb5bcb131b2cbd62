"""Main loop: accept new connections and service parked ones, one thread."""

import logging
import selectors
import socket
from typing import Optional

from httpengine.bootstrap.config import EngineConfig
from httpengine.bootstrap.socket_factory import create_listening_socket
from httpengine.domain.log_context import ContextLoggerAdapter
from httpengine.lifecycle.state import ServerLifecycle
from httpengine.pipeline.invocation import Handler
from httpengine.transport.connection_manager import ConnectionManager
from httpengine.transport.context import EngineContext
from httpengine.transport.worker import handle_client

ACCEPT_LOGGER = ContextLoggerAdapter(
    logging.getLogger("http_engine.transport.accept"), {}
)


def _accept_client(server_socket: socket.socket, context: EngineContext) -> None:
    """Accept one pending connection and run its first request."""
    try:
        client_socket, client_address = server_socket.accept()
    except BlockingIOError:
        return
    except OSError as error:
        ACCEPT_LOGGER.error(
            "Socket accept failed",
            extra={"event": "accept_error", "error_type": type(error).__name__},
        )
        return

    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={"event": "client_accepted", "client": client_addr_str},
        )

    try:
        handle_client(client_socket, client_address, context)
    except Exception as error:  # pylint: disable=broad-except
        ACCEPT_LOGGER.error(
            "Connection task failed",
            extra={
                "event": "worker_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
            exc_info=True,
        )


def run_server(
    context: EngineContext, server_socket: Optional[socket.socket] = None
) -> None:
    """Run the accept/service loop until the lifecycle asks it to stop."""
    config = context.config
    manager = context.manager
    lifecycle = context.lifecycle

    if server_socket is None:
        server_socket = create_listening_socket(config)
    server_socket.setblocking(False)
    bound_address = server_socket.getsockname()

    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": bound_address[0],
            "port": bound_address[1],
            "backlog": config.backlog,
        },
    )

    selector = selectors.DefaultSelector()
    selector.register(server_socket, selectors.EVENT_READ)
    try:
        while not lifecycle.should_stop():
            if selector.select(timeout=config.poll_interval):
                _accept_client(server_socket, context)
            manager.service_tick(context.handler)
            manager.maybe_sweep()
    finally:
        selector.close()
        server_socket.close()
        closed = manager.close_all()
        ACCEPT_LOGGER.info(
            "Server shutdown complete",
            extra={"event": "server_stopped", "evicted": closed},
        )


def build_context(
    handler: Handler,
    config: Optional[EngineConfig] = None,
    lifecycle: Optional[ServerLifecycle] = None,
) -> EngineContext:
    """Assemble the engine dependencies for a handler."""
    if not callable(handler):
        raise TypeError("Handler must be callable")
    config = config or EngineConfig()
    return EngineContext(
        config=config,
        handler=handler,
        manager=ConnectionManager(config),
        lifecycle=lifecycle or ServerLifecycle(),
    )


def serve(
    handler: Handler,
    config: Optional[EngineConfig] = None,
    lifecycle: Optional[ServerLifecycle] = None,
) -> None:
    """Serve ``handler`` on the configured address until stopped."""
    run_server(build_context(handler, config, lifecycle))
