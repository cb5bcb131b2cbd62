"""Response serialization into HTTP/1.1 wire bytes."""

from httpengine.domain.http_types import HttpResponse

REASON_PHRASES = {
    200: "OK",
    201: "Created",
    204: "No Content",
    301: "Moved Permanently",
    302: "Found",
    304: "Not Modified",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Request Entity Too Large",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}

DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"


def reason_phrase(status: int) -> str:
    """Return the reason phrase for a status code, or "Unknown"."""
    return REASON_PHRASES.get(status, "Unknown")


def serialize_response(response: HttpResponse) -> bytes:
    """Render status line, headers, blank line and body.

    Content-Length and Content-Type are appended after the caller's headers
    when the caller supplied neither spelling of them.
    """
    body = response.body
    if isinstance(body, str):
        body = body.encode()
    headers = dict(response.headers)
    if "Content-Length" not in headers and "content-length" not in headers:
        headers["Content-Length"] = str(len(body))
    if "Content-Type" not in headers and "content-type" not in headers:
        headers["Content-Type"] = DEFAULT_CONTENT_TYPE

    lines = [f"HTTP/1.1 {response.status} {reason_phrase(response.status)}"]
    lines.extend(f"{name}: {value}" for name, value in headers.items())
    head = "\r\n".join(lines).encode() + b"\r\n\r\n"
    return head + body
