"""Listening socket creation and TLS configuration."""

import socket
import ssl
import sys

from dummy_server.bootstrap.tls_material import TlsMaterial
from dummy_server.domain.correlation_id import get_logger

SOCKET_LOGGER = get_logger("bootstrap.socket")

ACCEPT_TIMEOUT_SECONDS = 0.5


def create_tls_context(material: TlsMaterial) -> ssl.SSLContext:
    """Build a server-side TLS context from the certificate material."""
    tls_context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    tls_context.load_cert_chain(material.cert_file, material.key_file)
    return tls_context


def create_server_socket(host: str, port: int, material: TlsMaterial) -> ssl.SSLSocket:
    """Create the TLS listening socket; handshakes are deferred to the workers."""
    try:
        tls_context = create_tls_context(material)
    except (ssl.SSLError, OSError) as error:
        SOCKET_LOGGER.critical(
            "Failed to load TLS certificates",
            extra={"event": "tls_load_failed", "error": str(error)},
        )
        sys.exit(1)

    try:
        server_socket = socket.create_server((host, port), reuse_port=True)
    except OSError as error:
        SOCKET_LOGGER.critical(
            "Failed to bind listening socket",
            extra={
                "event": "bind_failed",
                "host": host,
                "port": port,
                "error": str(error),
            },
        )
        sys.exit(1)
    server_socket.settimeout(ACCEPT_TIMEOUT_SECONDS)
    return tls_context.wrap_socket(
        server_socket, server_side=True, do_handshake_on_connect=False
    )
