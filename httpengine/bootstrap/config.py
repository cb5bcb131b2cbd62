"""Engine configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value is not None else default


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


DEFAULT_HOST = _env_str("HTTP_ENGINE_HOST", "127.0.0.1")
DEFAULT_PORT = _env_int("HTTP_ENGINE_PORT", 8080)
DEFAULT_BACKLOG = _env_int("HTTP_ENGINE_BACKLOG", 128)
DEFAULT_KEEP_ALIVE_TIMEOUT = _env_float("HTTP_ENGINE_KEEP_ALIVE_TIMEOUT", 30.0)
DEFAULT_MAX_REQUEST_SIZE = _env_int("HTTP_ENGINE_MAX_REQUEST_SIZE", 1024 * 1024)
DEFAULT_SOCKET_TIMEOUT = _env_float("HTTP_ENGINE_SOCKET_TIMEOUT", 1.0)
DEFAULT_POLL_INTERVAL = _env_float("HTTP_ENGINE_POLL_INTERVAL", 0.1)
DEFAULT_SWEEP_INTERVAL = _env_float("HTTP_ENGINE_SWEEP_INTERVAL", 30.0)

HEADER_DELIMITER = b"\r\n\r\n"
RECV_CHUNK_SIZE = 4096


@dataclass(frozen=True)
class EngineConfig:
    """Bind address, limits and timeouts for one engine instance."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    backlog: int = DEFAULT_BACKLOG
    keep_alive_timeout: float = DEFAULT_KEEP_ALIVE_TIMEOUT
    max_request_size: int = DEFAULT_MAX_REQUEST_SIZE
    socket_timeout: float = DEFAULT_SOCKET_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port must be between 0 and 65535, got {self.port}")
        if self.backlog < 0:
            raise ValueError("backlog must not be negative")
        if self.max_request_size <= 0:
            raise ValueError("max_request_size must be positive")
        for name in (
            "keep_alive_timeout",
            "socket_timeout",
            "poll_interval",
            "sweep_interval",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for engine configuration."""
    parser = argparse.ArgumentParser(description="HTTP/1.1 engine configuration")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--backlog",
        type=int,
        default=DEFAULT_BACKLOG,
        help="Pending connection queue length for listen()",
    )
    default_log_level = os.getenv("HTTP_ENGINE_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("HTTP_ENGINE_LOG_DESTINATION", "stdout")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--keep-alive-timeout",
        type=float,
        default=DEFAULT_KEEP_ALIVE_TIMEOUT,
        help="Seconds an idle keep-alive connection is kept before eviction",
    )
    parser.add_argument(
        "--max-request-size",
        type=int,
        default=DEFAULT_MAX_REQUEST_SIZE,
        help="Maximum size in bytes of a header block or of a request body",
    )
    parser.add_argument(
        "--socket-timeout",
        type=float,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for reads of an in-flight request",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help="Seconds the main loop waits for new connections per tick",
    )
    parser.add_argument(
        "--sweep-interval",
        type=float,
        default=DEFAULT_SWEEP_INTERVAL,
        help="Seconds between stale connection sweeps",
    )
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> EngineConfig:
    """Build a validated EngineConfig from parsed CLI arguments."""
    return EngineConfig(
        host=args.host,
        port=args.port,
        backlog=args.backlog,
        keep_alive_timeout=args.keep_alive_timeout,
        max_request_size=args.max_request_size,
        socket_timeout=args.socket_timeout,
        poll_interval=args.poll_interval,
        sweep_interval=args.sweep_interval,
    )
