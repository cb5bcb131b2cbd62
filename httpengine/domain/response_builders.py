"""Pure HTTP response builders for responses the engine produces on its own."""

from httpengine.domain.http_types import HttpResponse

PLAIN_TEXT = {"Content-Type": "text/plain"}

INTERNAL_ERROR_BODY = b"Internal Server Error"
INVALID_RESPONSE_BODY = b"Handler must return a response"


def bad_request_response(reason: str) -> HttpResponse:
    """Produce a 400 response describing why the request was rejected."""
    return HttpResponse(
        400,
        dict(PLAIN_TEXT),
        f"Bad Request: {reason}".encode(),
        True,
    )


def request_too_large_response() -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    return HttpResponse(
        413,
        dict(PLAIN_TEXT),
        b"Request Entity Too Large",
        True,
    )


def internal_error_response() -> HttpResponse:
    """Produce the 500 response sent when the handler raised."""
    return HttpResponse(500, dict(PLAIN_TEXT), INTERNAL_ERROR_BODY)


def invalid_handler_response() -> HttpResponse:
    """Produce the 500 response sent when the handler returned the wrong shape."""
    return HttpResponse(500, dict(PLAIN_TEXT), INVALID_RESPONSE_BODY)
