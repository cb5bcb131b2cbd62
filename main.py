"""Run the HTTP/1.1 engine with the bundled demo application."""

import logging
import signal
import sys

from httpengine.bootstrap.config import config_from_args, parse_cli_args
from httpengine.bootstrap.logging_setup import configure_logging
from httpengine.domain.errors import ListenerError
from httpengine.domain.log_context import ContextLoggerAdapter
from httpengine.handlers.demo import build_demo_handler
from httpengine.lifecycle.state import ServerLifecycle
from httpengine.transport.accept_loop import run_server
from httpengine.transport.connection_manager import ConnectionManager
from httpengine.transport.context import EngineContext

SERVER_LOGGER = ContextLoggerAdapter(logging.getLogger("http_engine.server"), {})


def main(argv: list[str] | None = None) -> int:
    """Start the engine and block until SIGINT or SIGTERM."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination)

    try:
        config = config_from_args(args)
    except ValueError as error:
        SERVER_LOGGER.critical(
            "Invalid configuration",
            extra={"event": "invalid_config", "error": str(error)},
        )
        return 2

    lifecycle = ServerLifecycle()

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "shutdown_signal", "signal": signum},
        )
        lifecycle.request_stop(signal.Signals(signum).name)

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    manager = ConnectionManager(config)
    context = EngineContext(
        config=config,
        handler=build_demo_handler(manager.stats),
        manager=manager,
        lifecycle=lifecycle,
    )

    SERVER_LOGGER.info(
        "Starting HTTP engine",
        extra={
            "event": "server_starting",
            "host": config.host,
            "port": config.port,
            "backlog": config.backlog,
            "log_destination": args.log_destination,
            "log_level": args.log_level,
            "keep_alive_timeout": config.keep_alive_timeout,
            "max_request_size": config.max_request_size,
            "socket_timeout": config.socket_timeout,
            "poll_interval": config.poll_interval,
            "sweep_interval": config.sweep_interval,
        },
    )
    try:
        run_server(context)
    except ListenerError:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
