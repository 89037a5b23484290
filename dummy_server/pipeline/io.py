"""HTTP/1.1 input and output over a client socket."""

import logging
import socket
import urllib.parse
from typing import Optional, Tuple

from dummy_server.bootstrap.config import HEADER_DELIMITER, MAX_BODY_BYTES
from dummy_server.domain.correlation_id import (
    adopt_correlation_id,
    get_correlation_id,
    get_logger,
)
from dummy_server.domain.http_types import HttpRequest, HttpResponse

IO_LOGGER = get_logger("pipeline.io")

CRLF = b"\r\n"
LAST_CHUNK = b"0\r\n\r\n"


class RequestEntityTooLarge(Exception):
    """Raised when a request body exceeds configured limits."""


class ResponseAlreadyStarted(RuntimeError):
    """Raised when a second status line is attempted on the same response."""


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary."""
    parsed = {}
    for line in lines:
        if ": " in line:
            name, value = line.split(": ", 1)
            parsed[name.lower()] = value
    return parsed


def parse_request_line(request_line: str) -> Tuple[str, str, dict[str, list[str]]]:
    """Parse the method, decoded path and query parameters of a request line."""
    try:
        method, target, _ = request_line.split(" ", 2)
    except ValueError as exc:
        raise ValueError("Invalid request line") from exc

    parsed_target = urllib.parse.urlsplit(target)
    path = urllib.parse.unquote(parsed_target.path)
    query = urllib.parse.parse_qs(parsed_target.query, keep_blank_values=True)
    return method, path, query


def determine_content_length(headers: dict[str, str]) -> int:
    """Validate and return the declared Content-Length for the request."""
    if "chunked" in headers.get("transfer-encoding", "").lower():
        raise ValueError("Chunked request bodies are not supported")
    header_value = headers.get("content-length")
    if header_value is None:
        return 0
    try:
        content_length = int(header_value)
    except ValueError as exc:
        raise ValueError("Invalid Content-Length") from exc
    if content_length < 0:
        raise ValueError("Negative Content-Length")
    if content_length > MAX_BODY_BYTES:
        raise RequestEntityTooLarge
    return content_length


def receive_request(
    client_socket: socket.socket, buffer: bytes
) -> Tuple[Optional[HttpRequest], bytes]:
    """Read bytes from the socket until a complete request is available."""
    while HEADER_DELIMITER not in buffer:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        buffer += chunk
        if len(buffer) > MAX_BODY_BYTES:
            raise RequestEntityTooLarge

    header_block, remainder = buffer.split(HEADER_DELIMITER, 1)
    header_lines = header_block.decode().split("\r\n")
    method, path, query = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])

    adopt_correlation_id(headers.get("x-request-id"))

    content_length = determine_content_length(headers)

    while len(remainder) < content_length:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        remainder += chunk

    body = remainder[:content_length]
    leftover = remainder[content_length:]
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Parsed request",
            extra={"event": "request_parsed", "method": method, "path": path},
        )
    return HttpRequest(method, path, headers, body, query), leftover


def _header_block(status_line: str, headers: dict[str, str]) -> bytes:
    header_lines = [status_line]
    header_lines.extend(f"{name}: {value}" for name, value in headers.items())
    return "\r\n".join(header_lines).encode() + HEADER_DELIMITER


def _with_framing_headers(
    headers: dict[str, str], close_connection: bool
) -> dict[str, str]:
    framed = dict(headers)
    correlation_id = get_correlation_id()
    if correlation_id:
        framed["X-Request-ID"] = correlation_id
    if close_connection:
        framed["Connection"] = "close"
    return framed


def send_response(client_socket: socket.socket, response: HttpResponse) -> None:
    """Serialize and send a complete HTTP response over the socket."""
    headers = _with_framing_headers(response.headers, response.close_connection)
    headers["Content-Length"] = str(len(response.body))
    client_socket.sendall(_header_block(response.status_line, headers) + response.body)
    IO_LOGGER.debug(
        "Sent response",
        extra={"event": "response_sent", "status_code": response.status_line},
    )


class ResponseWriter:
    """Writes a single response, either complete or as a chunked stream.

    The status line goes out at most once. After :meth:`start` every
    :meth:`write` becomes one chunk on the wire, and :meth:`finish` sends the
    terminating zero-length chunk. A stream that is never finished tells the
    client the body was cut short. A response started with ``send_body=False``
    (the answer to HEAD) carries headers only.
    """

    def __init__(self, client_socket: socket.socket) -> None:
        self._socket = client_socket
        self._send_body = True
        self.status_line: Optional[str] = None
        self.bytes_written = 0
        self.finished = False

    @property
    def headers_sent(self) -> bool:
        return self.status_line is not None

    def _claim_status(self, status_line: str) -> None:
        if self.status_line is not None:
            raise ResponseAlreadyStarted(
                f"{self.status_line!r} already sent, refusing {status_line!r}"
            )
        self.status_line = status_line

    def send(self, response: HttpResponse) -> None:
        """Send a complete response with a Content-Length body."""
        self._claim_status(response.status_line)
        send_response(self._socket, response)
        self.bytes_written = len(response.body)
        self.finished = True

    def start(
        self,
        status_line: str,
        headers: dict[str, str],
        close_connection: bool,
        send_body: bool = True,
    ) -> None:
        """Send the status line and headers of a chunked response."""
        self._claim_status(status_line)
        self._send_body = send_body
        framed = _with_framing_headers(headers, close_connection)
        framed["Transfer-Encoding"] = "chunked"
        self._socket.sendall(_header_block(status_line, framed))

    def write(self, data: memoryview | bytes) -> int:
        """Send ``data`` as one chunk and return how many bytes were accepted."""
        if not self.headers_sent:
            raise RuntimeError("start() must be called before write()")
        if not self._send_body:
            raise RuntimeError("response was started without a body")
        size = len(data)
        if size == 0:
            return 0
        self._socket.sendall(f"{size:X}".encode() + CRLF)
        self._socket.sendall(data)
        self._socket.sendall(CRLF)
        self.bytes_written += size
        return size

    def finish(self) -> None:
        """Terminate the chunked body."""
        if self._send_body:
            self._socket.sendall(LAST_CHUNK)
        self.finished = True
