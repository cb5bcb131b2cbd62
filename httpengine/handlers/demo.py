"""Demo application served by the CLI entry point."""

import html
import json
import logging
import time
from typing import Callable, Optional

from httpengine.domain.connection import ConnectionStats
from httpengine.domain.errors import InvalidJsonBody
from httpengine.domain.http_types import HttpMethod, HttpRequest, HttpResponse
from httpengine.domain.log_context import ContextLoggerAdapter
from httpengine.pipeline.body import (
    FORM_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    get_content_type,
    parse_form_data,
    parse_json_body,
)
from httpengine.pipeline.invocation import Handler

DEMO_LOGGER = ContextLoggerAdapter(logging.getLogger("http_engine.handlers.demo"), {})

SERVER_NAME = "httpengine"
HTML = "text/html; charset=utf-8"
PLAIN = "text/plain; charset=utf-8"

INDEX_PAGE = """<!DOCTYPE html>
<html>
<head><title>httpengine</title></head>
<body>
<h1>httpengine is running</h1>
<ul>
<li><code>GET /hello?name=You</code> greeting</li>
<li><code>GET /json</code> JSON document</li>
<li><code>POST /echo</code> echoes the request body</li>
<li><code>POST /form</code> decodes a form or JSON body</li>
<li><code>GET /status</code> connection statistics</li>
</ul>
</body>
</html>
"""

NOT_FOUND_PAGE = """<!DOCTYPE html>
<html>
<head><title>404 - Not Found</title></head>
<body>
<h1>404 - Not Found</h1>
<p>The requested path <code>{path}</code> was not found.</p>
</body>
</html>
"""


def _scalar(value, default: str) -> str:
    if isinstance(value, list):
        return value[-1] if value else default
    return value or default


def handle_index(_request: HttpRequest) -> HttpResponse:
    return HttpResponse(200, {"Content-Type": HTML}, INDEX_PAGE.encode())


def handle_hello(request: HttpRequest) -> HttpResponse:
    """Greet the caller, by name when ?name= is supplied."""
    name = _scalar(request.query.get("name"), "World")
    return HttpResponse(200, {"Content-Type": PLAIN}, f"Hello, {name}!".encode())


def handle_json(_request: HttpRequest) -> HttpResponse:
    payload = {
        "message": f"Hello from {SERVER_NAME}!",
        "timestamp": int(time.time()),
        "server": SERVER_NAME,
    }
    return HttpResponse(
        200, {"Content-Type": JSON_CONTENT_TYPE}, json.dumps(payload).encode()
    )


def handle_echo(request: HttpRequest) -> HttpResponse:
    """Return the request body with the request's own content type."""
    content_type = request.headers.get("content-type", "text/plain")
    if DEMO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        DEMO_LOGGER.debug(
            "Echo request processed",
            extra={"event": "echo_request", "bytes_in": len(request.body)},
        )
    return HttpResponse(
        200,
        {"Content-Type": content_type, "X-Original-Method": str(request.method)},
        request.body,
    )


def handle_form(request: HttpRequest) -> HttpResponse:
    """Decode a form or JSON body and return it as JSON."""
    content_type = get_content_type(request.headers)
    if content_type == FORM_CONTENT_TYPE:
        data = parse_form_data(request.body)
    elif content_type == JSON_CONTENT_TYPE:
        try:
            data = parse_json_body(request.body)
        except InvalidJsonBody as error:
            return HttpResponse(400, {"Content-Type": PLAIN}, str(error).encode())
    else:
        return HttpResponse(
            400,
            {"Content-Type": PLAIN},
            f"Unsupported content type: {content_type or '-'}".encode(),
        )
    return HttpResponse(
        200, {"Content-Type": JSON_CONTENT_TYPE}, json.dumps(data).encode()
    )


def status_handler(
    stats_provider: Optional[Callable[[], ConnectionStats]],
) -> Handler:
    def handle_status(_request: HttpRequest) -> HttpResponse:
        lines = ["=== httpengine status ===", f"server: {SERVER_NAME}"]
        if stats_provider is not None:
            stats = stats_provider()
            lines.extend(
                [
                    f"connections: {stats.total}",
                    f"keep_alive_connections: {stats.keep_alive_count}",
                    f"requests_served: {stats.requests_served}",
                    f"uptime_seconds: {stats.uptime:.1f}",
                ]
            )
        return HttpResponse(200, {"Content-Type": PLAIN}, "\n".join(lines).encode())

    return handle_status


def handle_not_found(request: HttpRequest) -> HttpResponse:
    DEMO_LOGGER.info(
        "No matching route found",
        extra={
            "event": "route_not_found",
            "route": request.path,
            "method": str(request.method),
        },
    )
    body = NOT_FOUND_PAGE.format(path=html.escape(request.path))
    return HttpResponse(404, {"Content-Type": HTML}, body.encode())


def build_demo_handler(
    stats_provider: Optional[Callable[[], ConnectionStats]] = None,
) -> Handler:
    """Return the demo request handler, optionally reporting engine statistics."""
    routes: dict[tuple[Optional[HttpMethod], str], Handler] = {
        (None, "/"): handle_index,
        (None, "/hello"): handle_hello,
        (None, "/json"): handle_json,
        (None, "/status"): status_handler(stats_provider),
        (HttpMethod.POST, "/echo"): handle_echo,
        (HttpMethod.POST, "/form"): handle_form,
    }

    def demo_handler(request: HttpRequest) -> HttpResponse:
        route = routes.get((request.method, request.path)) or routes.get(
            (None, request.path)
        )
        if route is None:
            return handle_not_found(request)
        if DEMO_LOGGER.logger.isEnabledFor(logging.DEBUG):
            DEMO_LOGGER.debug(
                "Route matched", extra={"event": "route_matched", "route": request.path}
            )
        return route(request)

    return demo_handler
