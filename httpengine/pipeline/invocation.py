"""Failure boundary around the application-supplied request handler."""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Optional

from httpengine.domain.http_types import HttpRequest, HttpResponse
from httpengine.domain.log_context import ContextLoggerAdapter
from httpengine.domain.response_builders import (
    internal_error_response,
    invalid_handler_response,
)

INVOCATION_LOGGER = ContextLoggerAdapter(
    logging.getLogger("http_engine.pipeline.invocation"), {}
)

Handler = Callable[[HttpRequest], Any]


def _normalize_body(body: Any) -> Optional[bytes]:
    if body is None:
        return b""
    if isinstance(body, bytes):
        return body
    if isinstance(body, (bytearray, memoryview)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode()
    return None


def coerce_response(result: Any) -> Optional[HttpResponse]:
    """Turn a handler result into an HttpResponse, or None when malformed."""
    if isinstance(result, HttpResponse):
        status = result.status
        headers = result.headers
        body = result.body
        close_connection = result.close_connection
    elif isinstance(result, Mapping):
        status = result.get("status")
        headers = result.get("headers")
        body = result.get("body")
        close_connection = result.get("close_connection")
    else:
        return None

    if status is None:
        status = 200
    if headers is None:
        headers = {}
    if isinstance(status, bool) or not isinstance(status, int):
        return None
    if not isinstance(headers, Mapping):
        return None
    normalized_body = _normalize_body(body)
    if normalized_body is None:
        return None

    return HttpResponse(
        status=status,
        headers={str(name): str(value) for name, value in headers.items()},
        body=normalized_body,
        close_connection=bool(close_connection),
    )


def invoke_handler(handler: Handler, request: HttpRequest) -> HttpResponse:
    """Call the handler and always return a well-formed response."""
    try:
        result = handler(request)
    except Exception as error:  # pylint: disable=broad-except
        INVOCATION_LOGGER.error(
            "Handler raised an exception",
            extra={
                "event": "handler_error",
                "method": str(request.method),
                "route": request.path,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
        return internal_error_response()

    response = coerce_response(result)
    if response is None:
        INVOCATION_LOGGER.error(
            "Handler returned an invalid response",
            extra={
                "event": "invalid_handler_response",
                "route": request.path,
                "error_type": type(result).__name__,
            },
        )
        return invalid_handler_response()
    return response
