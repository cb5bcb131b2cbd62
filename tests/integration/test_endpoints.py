"""Integration tests exercising the demo application's HTTP endpoints."""

from __future__ import annotations

import pytest
import requests

pytestmark = pytest.mark.integration


def test_root_endpoint_lists_routes(base_url: str) -> None:
    response = requests.get(f"{base_url}/", timeout=5)
    assert response.status_code == 200
    assert response.headers["Content-Type"].startswith("text/html")
    assert "/hello" in response.text


def test_hello_endpoint_decodes_query(base_url: str) -> None:
    """Percent-encoded query values reach the handler decoded."""

    response = requests.get(f"{base_url}/hello?name=John%20Doe", timeout=5)
    assert response.status_code == 200
    assert response.text == "Hello, John Doe!"


def test_json_endpoint(base_url: str) -> None:
    response = requests.get(f"{base_url}/json", timeout=5)
    assert response.status_code == 200
    assert response.headers["Content-Type"] == "application/json"
    assert response.json()["server"] == "httpengine"


def test_echo_endpoint_round_trips_payload(base_url: str) -> None:
    """Echo should return the body unmodified with the same content type."""

    payload = b"\x00binary\xffpayload"
    response = requests.post(
        f"{base_url}/echo",
        data=payload,
        headers={"Content-Type": "application/octet-stream"},
        timeout=5,
    )
    assert response.status_code == 200
    assert response.content == payload
    assert response.headers["Content-Type"] == "application/octet-stream"
    assert response.headers["X-Original-Method"] == "POST"


def test_form_endpoint_decodes_urlencoded(base_url: str) -> None:
    response = requests.post(
        f"{base_url}/form",
        data={"name": "Jane Doe", "city": "New York"},
        timeout=5,
    )
    assert response.status_code == 200
    assert response.json() == {"name": "Jane Doe", "city": "New York"}


def test_form_endpoint_decodes_json(base_url: str) -> None:
    response = requests.post(f"{base_url}/form", json={"items": [1, 2]}, timeout=5)
    assert response.status_code == 200
    assert response.json() == {"items": [1, 2]}


def test_unknown_path_returns_404(base_url: str) -> None:
    response = requests.get(f"{base_url}/missing", timeout=5)
    assert response.status_code == 404
    assert "/missing" in response.text


def test_status_endpoint_reports_counters(base_url: str) -> None:
    with requests.Session() as session:
        session.get(f"{base_url}/hello", timeout=5)
        response = session.get(f"{base_url}/status", timeout=5)
    assert response.status_code == 200
    assert "requests_served:" in response.text
    assert "keep_alive_connections:" in response.text


def test_options_request_is_dispatched(base_url: str) -> None:
    response = requests.options(f"{base_url}/hello", timeout=5)
    assert response.status_code == 200
    assert response.text == "Hello, World!"
