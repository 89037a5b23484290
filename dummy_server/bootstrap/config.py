"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass

from dummy_server.domain.stream_params import MIN_BUFFER, MIN_SIZE


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


MAX_BODY_BYTES = _env_int("DUMMY_SERVER_MAX_BODY_BYTES", 5 * 1024 * 1024)
DEFAULT_HOST = _env_str("DUMMY_SERVER_HOST", "0.0.0.0")
DEFAULT_PORT = _env_int("DUMMY_SERVER_PORT", 8443)
DEFAULT_SOURCE = _env_str("DUMMY_SERVER_SOURCE", "/dev/urandom")
DEFAULT_DATA_SIZE = _env_int("DUMMY_SERVER_DEFAULT_SIZE", 1 * (1 << 30))
DEFAULT_BUFFER_SIZE = _env_int("DUMMY_SERVER_DEFAULT_BUFFER", 32 * (1 << 10))
DEFAULT_SOCKET_TIMEOUT = _env_int("DUMMY_SERVER_SOCKET_TIMEOUT", 60)
DEFAULT_TLS_HOSTNAME = _env_str(
    "DUMMY_SERVER_TLS_HOSTNAME", "my-service.my-namespace.svc.cluster.local"
)

HEADER_DELIMITER = b"\r\n\r\n"
STREAM_CONTENT_TYPE = "application/octet-stream"

SECURITY_HEADERS = {
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
}


@dataclass
class ServerConfig:
    """Per-connection settings shared by every worker thread."""

    socket_timeout: int
    source_path: str = DEFAULT_SOURCE
    default_size: int = DEFAULT_DATA_SIZE
    default_buffer: int = DEFAULT_BUFFER_SIZE


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Build the worker configuration from parsed CLI arguments."""
    return ServerConfig(
        socket_timeout=args.socket_timeout,
        source_path=args.source,
        default_size=args.default_size,
        default_buffer=args.default_buffer,
    )


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(
        description="Diagnostic TLS server streaming pseudo-random bytes"
    )
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--cert", help="Path to TLS certificate file")
    parser.add_argument("--key", help="Path to TLS private key file")
    parser.add_argument(
        "--tls-hostname",
        default=DEFAULT_TLS_HOSTNAME,
        help="Host name of the generated self-signed certificate",
    )
    parser.add_argument(
        "--source",
        default=DEFAULT_SOURCE,
        help="File providing the pseudo-random bytes",
    )
    parser.add_argument(
        "--default-size",
        type=int,
        default=DEFAULT_DATA_SIZE,
        help="Bytes sent when the request has no 'size' parameter",
    )
    parser.add_argument(
        "--default-buffer",
        type=int,
        default=DEFAULT_BUFFER_SIZE,
        help="Chunk size used when the request has no 'buffer' parameter",
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for client connections",
    )
    default_log_level = os.getenv("DUMMY_SERVER_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("DUMMY_SERVER_LOG_DESTINATION", "stdout")
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
    args = parser.parse_args(argv)
    if args.default_size < MIN_SIZE:
        parser.error(f"--default-size must be at least {MIN_SIZE}")
    if args.default_buffer < MIN_BUFFER:
        parser.error(f"--default-buffer must be at least {MIN_BUFFER}")
    return args
