"""Main connection acceptance loop."""

import logging
import socket
import threading
from typing import Optional

from dummy_server.bootstrap.socket_factory import create_server_socket
from dummy_server.bootstrap.tls_material import TlsMaterial
from dummy_server.domain.correlation_id import get_logger
from dummy_server.transport.context import WorkerContext
from dummy_server.transport.worker import handle_client

ACCEPT_LOGGER = get_logger("transport.accept")


def _start_worker(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Hand a newly accepted connection to its own thread."""
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={
                "event": "client_accepted",
                "client": f"{client_address[0]}:{client_address[1]}",
            },
        )
    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, context),
        daemon=True,
    )
    thread.start()


def run_server(
    host: str,
    port: int,
    material: TlsMaterial,
    context: WorkerContext,
    stop_event: Optional[threading.Event] = None,
) -> None:
    """Accept TLS connections until ``stop_event`` is set or the process dies."""

    server_socket = create_server_socket(host, port, material)

    ACCEPT_LOGGER.info(
        "Ready to listen and serve",
        extra={"event": "server_listening", "host": host, "port": port, "tls": True},
    )

    try:
        while stop_event is None or not stop_event.is_set():
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as error:
                if stop_event is not None and stop_event.is_set():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={
                        "event": "accept_error",
                        "error_type": type(error).__name__,
                        "error": str(error),
                    },
                )
                continue

            _start_worker(client_socket, client_address, context)
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info("Server stopped", extra={"event": "server_stopped"})
