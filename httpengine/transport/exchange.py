"""One request/response cycle on a connection, shared by new and reused sockets."""

import logging
import socket
import time
from typing import Callable

from httpengine.bootstrap.config import EngineConfig
from httpengine.domain.connection import ConnectionRecord
from httpengine.domain.errors import ParseError, RequestLimitExceeded
from httpengine.domain.http_types import HttpResponse, wants_keep_alive
from httpengine.domain.log_context import (
    ContextLoggerAdapter,
    bind_request,
    generate_request_id,
)
from httpengine.domain.response_builders import (
    bad_request_response,
    request_too_large_response,
)
from httpengine.pipeline.invocation import Handler, invoke_handler
from httpengine.pipeline.io import receive_request, send_response
from httpengine.pipeline.parser import parse_request

EXCHANGE_LOGGER = ContextLoggerAdapter(
    logging.getLogger("http_engine.transport.exchange"), {}
)


def _apply_connection_header(response: HttpResponse, keep_alive: bool) -> None:
    if any(name.lower() == "connection" for name in response.headers):
        return
    response.headers["Connection"] = "keep-alive" if keep_alive else "close"


def _send_best_effort(client_socket: socket.socket, response: HttpResponse) -> None:
    _apply_connection_header(response, keep_alive=False)
    try:
        send_response(client_socket, response)
    except OSError as error:
        EXCHANGE_LOGGER.debug(
            "Could not deliver error response",
            extra={"event": "error_response_dropped", "error_type": type(error).__name__},
        )


def serve_exchange(
    record: ConnectionRecord,
    handler: Handler,
    config: EngineConfig,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Read, parse, dispatch and answer one request.

    Returns True when the connection should stay open for another request.
    Socket errors and mid-request timeouts propagate to the caller, which owns
    the connection's teardown.
    """
    bind_request(generate_request_id())
    started = clock()
    client_socket = record.socket
    try:
        raw_request, record.buffer = receive_request(
            client_socket,
            record.buffer,
            config.max_request_size,
            timeout=config.socket_timeout,
        )
        if raw_request is None:
            if EXCHANGE_LOGGER.logger.isEnabledFor(logging.DEBUG):
                EXCHANGE_LOGGER.debug(
                    "Client closed or stayed silent before sending a request",
                    extra={"event": "client_disconnected", "client": record.client},
                )
            return False
        request = parse_request(raw_request)
    except RequestLimitExceeded as error:
        EXCHANGE_LOGGER.warning(
            "Request exceeded size limit",
            extra={
                "event": "request_too_large",
                "client": record.client,
                "error_type": type(error).__name__,
                "limit": config.max_request_size,
            },
        )
        _send_best_effort(client_socket, request_too_large_response())
        return False
    except ParseError as error:
        EXCHANGE_LOGGER.warning(
            "Malformed request received",
            extra={
                "event": "malformed_request",
                "client": record.client,
                "error_type": type(error).__name__,
                "reason": str(error),
            },
        )
        _send_best_effort(client_socket, bad_request_response(str(error)))
        return False

    record.touch(clock())
    if EXCHANGE_LOGGER.logger.isEnabledFor(logging.DEBUG):
        EXCHANGE_LOGGER.debug(
            "Request parsed",
            extra={
                "event": "request_parsed",
                "method": str(request.method),
                "route": request.path,
            },
        )

    response = invoke_handler(handler, request)
    keep_alive = wants_keep_alive(request.headers) and not response.close_connection
    _apply_connection_header(response, keep_alive)

    bytes_out = send_response(client_socket, response)
    record.touch(clock())
    record.requests_served += 1

    EXCHANGE_LOGGER.info(
        "Request complete",
        extra={
            "event": "request_complete",
            "client": record.client,
            "method": str(request.method),
            "route": request.path,
            "status_code": response.status,
            "keep_alive": keep_alive,
            "bytes_out": bytes_out,
            "duration_ms": round((clock() - started) * 1000, 3),
        },
    )
    bind_request(None)
    return keep_alive
