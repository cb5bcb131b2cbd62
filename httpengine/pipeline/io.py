"""HTTP Input/Output operations: request framing and response writing."""

import logging
import socket
import time
from typing import Callable, Optional, Tuple

from httpengine.bootstrap.config import HEADER_DELIMITER, RECV_CHUNK_SIZE
from httpengine.domain.errors import (
    BodyTooLarge,
    IncompleteRequest,
    MalformedRequest,
    RequestTooLarge,
)
from httpengine.domain.http_types import HttpResponse
from httpengine.domain.log_context import ContextLoggerAdapter
from httpengine.pipeline.parser import strip_leading_empty_lines
from httpengine.pipeline.serializer import serialize_response

IO_LOGGER = ContextLoggerAdapter(logging.getLogger("http_engine.pipeline.io"), {})


def determine_content_length(header_block: bytes) -> int:
    """Return the declared Content-Length of a raw header block (0 when absent)."""
    declared = None
    lines = strip_leading_empty_lines(header_block).split(b"\r\n")
    for line in lines[1:]:
        name, separator, value = line.partition(b":")
        if separator and name.strip().lower() == b"content-length":
            declared = value.strip()
    if declared is None:
        return 0
    if not declared.isdigit():
        raise MalformedRequest("Invalid Content-Length")
    return int(declared)


def _recv_before(
    client_socket: socket.socket,
    deadline: Optional[float],
    clock: Callable[[], float],
) -> bytes:
    if deadline is None:
        return client_socket.recv(RECV_CHUNK_SIZE)
    remaining = deadline - clock()
    if remaining <= 0:
        raise socket.timeout("Request deadline exceeded")
    client_socket.settimeout(remaining)
    return client_socket.recv(RECV_CHUNK_SIZE)


def _read_headers(
    client_socket: socket.socket,
    buffer: bytes,
    max_request_size: int,
    deadline: Optional[float],
    clock: Callable[[], float],
) -> Optional[bytes]:
    buffer = strip_leading_empty_lines(buffer)
    while HEADER_DELIMITER not in buffer:
        if len(buffer) > max_request_size:
            raise RequestTooLarge(
                f"Request head exceeds {max_request_size} bytes"
            )
        try:
            chunk = _recv_before(client_socket, deadline, clock)
        except socket.timeout:
            if not buffer:
                return None
            raise
        if not chunk:
            if buffer:
                raise IncompleteRequest("Connection closed before headers completed")
            return None
        buffer = strip_leading_empty_lines(buffer + chunk)
    return buffer


def receive_request(
    client_socket: socket.socket,
    buffer: bytes,
    max_request_size: int,
    timeout: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> Tuple[Optional[bytes], bytes]:
    """Read exactly one framed request from the socket.

    Returns the raw request bytes and whatever was received past its end.
    ``(None, b"")`` means the peer went away, or stayed silent, before sending
    anything.

    ``timeout`` bounds the whole request, not each read: a peer that trickles
    bytes slower than that gets a ``TimeoutError`` once the deadline passes.
    The socket timeout is reset to ``timeout`` before returning.
    """
    deadline = clock() + timeout if timeout is not None else None
    try:
        return _frame_request(client_socket, buffer, max_request_size, deadline, clock)
    finally:
        if timeout is not None:
            client_socket.settimeout(timeout)


def _frame_request(
    client_socket: socket.socket,
    buffer: bytes,
    max_request_size: int,
    deadline: Optional[float],
    clock: Callable[[], float],
) -> Tuple[Optional[bytes], bytes]:
    buffer = _read_headers(client_socket, buffer, max_request_size, deadline, clock)
    if buffer is None:
        return None, b""

    header_end = buffer.index(HEADER_DELIMITER)
    if header_end > max_request_size:
        raise RequestTooLarge(f"Request head exceeds {max_request_size} bytes")

    content_length = determine_content_length(buffer[:header_end])
    if content_length > max_request_size:
        raise BodyTooLarge(
            f"Declared body of {content_length} bytes exceeds {max_request_size}"
        )

    request_end = header_end + len(HEADER_DELIMITER) + content_length
    while len(buffer) < request_end:
        chunk = _recv_before(client_socket, deadline, clock)
        if not chunk:
            raise IncompleteRequest("Connection closed before body completed")
        buffer += chunk

    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Framed request",
            extra={"event": "request_framed", "bytes_in": request_end},
        )
    return buffer[:request_end], buffer[request_end:]


def send_response(client_socket: socket.socket, response: HttpResponse) -> int:
    """Serialize and send the HTTP response over the socket."""
    payload = serialize_response(response)
    client_socket.sendall(payload)
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Sent response",
            extra={
                "event": "response_sent",
                "status_code": response.status,
                "bytes_out": len(payload),
            },
        )
    return len(payload)
