"""Per-connection and per-request logging context stored in contextvars."""

import contextvars
import logging
import uuid
from typing import Any, MutableMapping, Optional

LOGGER_PREFIX = "http_engine."

_connection_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "connection_id", default=None
)
_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def generate_request_id() -> str:
    """Generate a new request ID using UUID4."""
    return str(uuid.uuid4())


def get_connection_id() -> Optional[str]:
    """Return the connection currently being serviced, if any."""
    return _connection_id_var.get()


def get_request_id() -> Optional[str]:
    """Return the request currently being serviced, if any."""
    return _request_id_var.get()


def bind_connection(connection_id: Optional[str]) -> None:
    """Attach subsequent log records to the given connection."""
    _connection_id_var.set(connection_id)


def bind_request(request_id: Optional[str]) -> None:
    """Attach subsequent log records to the given request."""
    _request_id_var.set(request_id)


def clear_log_context() -> None:
    """Forget both the connection and the request identifiers."""
    _connection_id_var.set(None)
    _request_id_var.set(None)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that injects connection_id, request_id and component."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        if "extra" not in kwargs:
            kwargs["extra"] = {}
        else:
            kwargs["extra"] = dict(kwargs["extra"])

        extra = kwargs["extra"]
        extra.setdefault("connection_id", get_connection_id() or "-")
        extra["request_id"] = get_request_id() or "-"

        logger_name = self.logger.name
        if logger_name.startswith(LOGGER_PREFIX):
            extra["component"] = logger_name[len(LOGGER_PREFIX) :]
        else:
            extra["component"] = logger_name

        return msg, kwargs
