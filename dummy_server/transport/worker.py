"""Worker thread logic for handling individual client connections."""

import logging
import socket
import ssl
from typing import Optional

from dummy_server.bootstrap.config import MAX_BODY_BYTES, SECURITY_HEADERS
from dummy_server.domain.correlation_id import correlation_scope, get_logger
from dummy_server.domain.http_types import HttpRequest
from dummy_server.domain.response_builders import (
    bad_request_response,
    entity_too_large_response,
)
from dummy_server.pipeline.io import (
    RequestEntityTooLarge,
    ResponseWriter,
    receive_request,
    send_response,
)
from dummy_server.transport.context import WorkerContext

WORKER_LOGGER = get_logger("transport.worker")


def _handshake(client_socket: socket.socket, client_addr_str: str) -> bool:
    """Complete the TLS handshake deferred by the listening socket."""
    if not isinstance(client_socket, ssl.SSLSocket):
        return True
    try:
        client_socket.do_handshake()
    except (ssl.SSLError, OSError) as error:
        WORKER_LOGGER.warning(
            "TLS handshake failed",
            extra={
                "event": "tls_handshake_failed",
                "client": client_addr_str,
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        return False
    return True


def _read_request_with_validation(
    client_socket: socket.socket,
    buffer: bytes,
    client_addr_str: str,
) -> tuple[Optional[HttpRequest], bytes, bool]:
    """Read a request from the socket, answering malformed ones directly."""

    try:
        request, buffer = receive_request(client_socket, buffer)
    except RequestEntityTooLarge:
        WORKER_LOGGER.warning(
            "Request size exceeded limit",
            extra={
                "event": "body_size_exceeded",
                "client": client_addr_str,
                "size": MAX_BODY_BYTES,
            },
        )
        send_response(client_socket, entity_too_large_response(SECURITY_HEADERS))
        return None, b"", True
    except ValueError:
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "client": client_addr_str},
        )
        send_response(client_socket, bad_request_response(None, SECURITY_HEADERS))
        return None, b"", True

    if request is None:
        if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            WORKER_LOGGER.debug(
                "Client disconnected",
                extra={"event": "client_disconnected", "client": client_addr_str},
            )
        return None, buffer, True
    return request, buffer, False


def _serve_requests(
    client_socket: socket.socket, client_addr_str: str, context: WorkerContext
) -> None:
    buffer = b""
    while True:
        with correlation_scope():
            request, buffer, should_terminate = _read_request_with_validation(
                client_socket, buffer, client_addr_str
            )
            if should_terminate:
                return

            writer = ResponseWriter(client_socket)
            close_connection = context.handler.serve(request, writer)

            WORKER_LOGGER.debug(
                "Request processing complete",
                extra={
                    "event": "request_complete",
                    "client": client_addr_str,
                    "status_code": writer.status_line,
                    "size": writer.bytes_written,
                    "finished": writer.finished,
                },
            )
        if close_connection:
            return


def _close_client(client_socket: socket.socket, client_addr_str: str) -> None:
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()
    WORKER_LOGGER.debug(
        "Socket closed",
        extra={"event": "socket_closed", "client": client_addr_str},
    )


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Process requests on a client socket until the connection is closed."""
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    try:
        client_socket.settimeout(context.config.socket_timeout)
        if _handshake(client_socket, client_addr_str):
            _serve_requests(client_socket, client_addr_str, context)
    except (ConnectionError, TimeoutError, OSError) as error:
        WORKER_LOGGER.error(
            "Error handling client connection",
            extra={
                "event": "connection_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
        )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
    finally:
        _close_client(client_socket, client_addr_str)
