"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

QueryValue = Union[str, list[str]]

SUPPORTED_VERSIONS = frozenset({"HTTP/1.0", "HTTP/1.1"})


class HttpMethod(str, Enum):
    """Request methods accepted by the parser."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    PATCH = "PATCH"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HttpRequest:
    """Represents a parsed HTTP request."""

    method: HttpMethod
    path: str
    query: dict[str, QueryValue]
    headers: dict[str, str]
    body: bytes
    version: str


@dataclass
class HttpResponse:
    """Represents an HTTP response to be sent to a client."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    close_connection: bool = False


def wants_keep_alive(headers: dict[str, str]) -> bool:
    """Return True when the request explicitly asked to keep the connection open."""
    return headers.get("connection", "").lower() == "keep-alive"
