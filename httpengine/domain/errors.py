"""Exception hierarchy raised by the engine's parsing and transport layers."""


class EngineError(Exception):
    """Base class for every error raised by the engine."""


class ParseError(EngineError):
    """Raised when a framed request cannot be turned into an HttpRequest."""


class MalformedRequest(ParseError):
    """Raised when the header block is missing, unreadable, or empty."""


class InvalidRequestLine(ParseError):
    """Raised when the request line is not METHOD SP PATH SP VERSION."""


class InvalidMethod(ParseError):
    """Raised when the request method is outside the supported verbs."""


class UnsupportedVersion(ParseError):
    """Raised when the protocol version is not HTTP/1.0 or HTTP/1.1."""


class RequestLimitExceeded(EngineError):
    """Raised when a request outgrows the configured size limit."""


class RequestTooLarge(RequestLimitExceeded):
    """Raised when the header block exceeds max_request_size."""


class BodyTooLarge(RequestLimitExceeded):
    """Raised when the declared Content-Length exceeds max_request_size."""


class IncompleteRequest(EngineError, ConnectionError):
    """Raised when the peer closes the connection partway through a request."""


class ListenerError(EngineError):
    """Raised when the listening socket cannot be bound or put into listen mode."""


class InvalidJsonBody(ValueError):
    """Raised when a request body declared as JSON cannot be decoded."""
