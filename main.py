"""Diagnostic TLS server streaming configurable amounts of pseudo-random data."""

import signal
import sys
import threading

from dummy_server.bootstrap.config import config_from_args, parse_cli_args
from dummy_server.bootstrap.logging_setup import configure_logging
from dummy_server.bootstrap.tls_material import resolve_tls_material
from dummy_server.transport.accept_loop import run_server
from dummy_server.transport.context import build_worker_context


def main(argv: list[str] | None = None) -> None:
    """Start the server and spawn a worker thread per connection."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    logger = configure_logging(args.log_level, args.log_destination)

    config = config_from_args(args)
    logger.info(
        "Starting server",
        extra={
            "event": "server_starting",
            "host": args.host,
            "port": args.port,
            "source": config.source_path,
            "size": config.default_size,
            "buffer": config.default_buffer,
            "log_destination": args.log_destination,
            "log_level": args.log_level,
            "socket_timeout": config.socket_timeout,
        },
    )

    try:
        material = resolve_tls_material(args.cert, args.key, args.tls_hostname)
    except OSError as error:
        logger.critical(
            "Failed to create TLS certificate files",
            extra={"event": "tls_material_failed", "error": str(error)},
        )
        sys.exit(1)

    stop_event = threading.Event()

    def stop_handler(signum: int, _frame) -> None:
        logger.info(
            "Received stop signal", extra={"event": "signal_received", "signal": signum}
        )
        stop_event.set()

    signal.signal(signal.SIGTERM, stop_handler)
    signal.signal(signal.SIGINT, stop_handler)

    run_server(
        args.host, args.port, material, build_worker_context(config), stop_event
    )


if __name__ == "__main__":
    main()
