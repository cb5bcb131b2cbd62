"""Unit tests for the bundled demo application."""

import json

from httpengine.domain.connection import ConnectionStats
from httpengine.handlers.demo import build_demo_handler
from httpengine.pipeline.parser import parse_request


def call(handler, raw):
    return handler(parse_request(raw))


def request_bytes(method, target, headers=None, body=b""):
    lines = [f"{method} {target} HTTP/1.1"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    if body:
        lines.append(f"Content-Length: {len(body)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode() + body


def test_index_lists_routes():
    response = call(build_demo_handler(), request_bytes("GET", "/"))
    assert response.status == 200
    assert b"/hello" in response.body


def test_hello_defaults_to_world():
    response = call(build_demo_handler(), request_bytes("GET", "/hello"))
    assert response.body == b"Hello, World!"


def test_hello_uses_decoded_name():
    response = call(build_demo_handler(), request_bytes("GET", "/hello?name=John%20Doe"))
    assert response.body == b"Hello, John Doe!"


def test_hello_with_repeated_name_uses_last():
    response = call(build_demo_handler(), request_bytes("GET", "/hello?name=a&name=b"))
    assert response.body == b"Hello, b!"


def test_json_route():
    response = call(build_demo_handler(), request_bytes("GET", "/json"))
    payload = json.loads(response.body)
    assert response.headers["Content-Type"] == "application/json"
    assert payload["server"] == "httpengine"
    assert isinstance(payload["timestamp"], int)


def test_echo_returns_body_and_content_type():
    response = call(
        build_demo_handler(),
        request_bytes("POST", "/echo", {"Content-Type": "text/csv"}, b"a,b\n1,2"),
    )
    assert response.body == b"a,b\n1,2"
    assert response.headers["Content-Type"] == "text/csv"
    assert response.headers["X-Original-Method"] == "POST"


def test_echo_requires_post():
    response = call(build_demo_handler(), request_bytes("GET", "/echo"))
    assert response.status == 404


def test_form_decodes_urlencoded_body():
    response = call(
        build_demo_handler(),
        request_bytes(
            "POST",
            "/form",
            {"Content-Type": "application/x-www-form-urlencoded"},
            b"name=Jane+Doe&tags=x&tags=y",
        ),
    )
    assert response.status == 200
    assert json.loads(response.body) == {"name": "Jane Doe", "tags": ["x", "y"]}


def test_form_decodes_json_body():
    response = call(
        build_demo_handler(),
        request_bytes(
            "POST", "/form", {"Content-Type": "application/json"}, b'{"k": [1]}'
        ),
    )
    assert json.loads(response.body) == {"k": [1]}


def test_form_rejects_invalid_json():
    response = call(
        build_demo_handler(),
        request_bytes("POST", "/form", {"Content-Type": "application/json"}, b"{"),
    )
    assert response.status == 400


def test_form_rejects_unsupported_content_type():
    response = call(
        build_demo_handler(),
        request_bytes("POST", "/form", {"Content-Type": "text/plain"}, b"x"),
    )
    assert response.status == 400
    assert b"text/plain" in response.body


def test_status_reports_engine_statistics():
    stats = ConnectionStats(total=3, keep_alive_count=2, uptime=12.5, requests_served=9)
    response = call(build_demo_handler(lambda: stats), request_bytes("GET", "/status"))
    text = response.body.decode()
    assert "connections: 3" in text
    assert "keep_alive_connections: 2" in text
    assert "requests_served: 9" in text
    assert "uptime_seconds: 12.5" in text


def test_status_without_provider():
    response = call(build_demo_handler(), request_bytes("GET", "/status"))
    assert response.status == 200
    assert b"connections:" not in response.body


def test_not_found_escapes_path():
    response = call(build_demo_handler(), request_bytes("GET", "/%3Cscript%3E"))
    assert response.status == 404
    assert b"&lt;script&gt;" in response.body
    assert b"<script>" not in response.body
