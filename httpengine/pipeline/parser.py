"""Pure HTTP/1.x request parser: raw bytes in, HttpRequest out."""

import urllib.parse

from httpengine.bootstrap.config import HEADER_DELIMITER
from httpengine.domain.errors import (
    InvalidMethod,
    InvalidRequestLine,
    MalformedRequest,
    UnsupportedVersion,
)
from httpengine.domain.http_types import (
    SUPPORTED_VERSIONS,
    HttpMethod,
    HttpRequest,
    QueryValue,
)


EMPTY_LINE_BYTES = b"\r\n"


def strip_leading_empty_lines(data: bytes) -> bytes:
    """Drop CR and LF bytes that precede the request line.

    Clients may send an extra CRLF after a request body (RFC 7230 section 3.5).
    The framer, the Content-Length lookup and the parser all apply this rule,
    so the first line after it is always the request line.
    """
    return data.lstrip(EMPTY_LINE_BYTES)


def url_decode(value: str, plus_as_space: bool = False) -> str:
    """Percent-decode a path or query component."""
    if plus_as_space:
        return urllib.parse.unquote_plus(value)
    return urllib.parse.unquote(value)


def parse_query_string(query: str) -> dict[str, QueryValue]:
    """Decode an ampersand-separated key/value string.

    A key that appears once maps to a string; a repeated key collects its
    values, in encounter order, into a list.
    """
    params: dict[str, QueryValue] = {}
    for pair in query.split("&"):
        if not pair:
            continue
        raw_key, _, raw_value = pair.partition("=")
        key = url_decode(raw_key, plus_as_space=True)
        value = url_decode(raw_value, plus_as_space=True)
        existing = params.get(key)
        if existing is None:
            params[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            params[key] = [existing, value]
    return params


def split_target(target: str) -> tuple[str, dict[str, QueryValue]]:
    """Split a request target into its decoded path and query parameters."""
    raw_path, _, query = target.partition("?")
    return url_decode(raw_path), parse_query_string(query)


def parse_request_line(line: str) -> tuple[HttpMethod, str, str]:
    """Validate the request line and return method, raw target and version."""
    tokens = line.split()
    if len(tokens) != 3 or line[:1].isspace():
        raise InvalidRequestLine(f"Invalid request line: {line!r}")
    method_token, target, version = tokens

    try:
        method = HttpMethod(method_token.upper())
    except ValueError as exc:
        raise InvalidMethod(f"Invalid HTTP method: {method_token}") from exc

    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersion(f"Unsupported HTTP version: {version}")
    return method, target, version


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary.

    Lines without a colon are skipped; later duplicates overwrite earlier ones.
    """
    parsed = {}
    for line in lines:
        name, separator, value = line.partition(":")
        name = name.rstrip()
        if not separator or not name:
            continue
        parsed[name.lower()] = value.strip()
    return parsed


def parse_request(data: bytes) -> HttpRequest:
    """Parse one complete, already framed HTTP request."""
    data = strip_leading_empty_lines(data)
    header_end = data.find(HEADER_DELIMITER)
    if header_end < 0:
        raise MalformedRequest("Invalid HTTP request format")

    try:
        header_block = data[:header_end].decode()
    except UnicodeDecodeError as exc:
        raise MalformedRequest("Request head is not valid UTF-8") from exc
    body = data[header_end + len(HEADER_DELIMITER) :]

    if not header_block:
        raise MalformedRequest("Missing request line")
    lines = header_block.replace("\r\n", "\n").split("\n")

    method, target, version = parse_request_line(lines[0])
    headers = parse_headers(lines[1:])
    path, query = split_target(target)

    return HttpRequest(
        method=method,
        path=path,
        query=query,
        headers=headers,
        body=body,
        version=version,
    )
