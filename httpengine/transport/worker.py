"""Per-connection task: serve the first request of a newly accepted socket."""

import logging
import socket

from httpengine.domain.log_context import (
    ContextLoggerAdapter,
    bind_connection,
    clear_log_context,
)
from httpengine.transport.context import EngineContext
from httpengine.transport.exchange import serve_exchange

WORKER_LOGGER = ContextLoggerAdapter(
    logging.getLogger("http_engine.transport.worker"), {}
)


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: EngineContext,
) -> None:
    """Register the socket, answer its first request, then park or close it.

    A connection that negotiates keep-alive is handed to the ConnectionManager
    instead of blocking this task on a second read.
    """
    manager = context.manager
    connection_id = manager.register(client_socket, client_address)
    bind_connection(connection_id)
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    keep_alive = False

    try:
        client_socket.settimeout(context.config.socket_timeout)
        record = manager.get(connection_id)
        keep_alive = serve_exchange(
            record, context.handler, context.config, manager.clock
        )
    except TimeoutError:
        WORKER_LOGGER.info(
            "Client timed out mid-request",
            extra={"event": "request_timeout", "client": client_addr_str},
        )
    except (ConnectionError, OSError) as error:
        WORKER_LOGGER.info(
            "Error handling client connection",
            extra={
                "event": "connection_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
        )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in connection task",
            extra={
                "event": "worker_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
    finally:
        if keep_alive:
            manager.park(connection_id)
        else:
            manager.evict(connection_id)
        clear_log_context()
