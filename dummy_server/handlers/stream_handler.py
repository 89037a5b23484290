"""Handler streaming pseudo-random bytes to the client.

Every request follows the same path: resolve ``size`` and ``buffer`` from the
query string, open the byte source, send a 200 header and copy
``min(remaining, buffer)`` bytes at a time from the source to the response.
Up to the header, failures turn into a 400 or 500 response. After it, the only
option left is to stop writing and drop the connection, which the caller does
when :meth:`StreamHandler.serve` returns ``True`` for an unfinished stream.
HEAD requests get the same headers and no body.
"""

import time
from typing import Callable, Optional

from dummy_server.bootstrap.config import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_DATA_SIZE,
    SECURITY_HEADERS,
    STREAM_CONTENT_TYPE,
)
from dummy_server.bootstrap.logging_setup import redact_headers
from dummy_server.domain.byte_source import ByteSource, SourceOpener
from dummy_server.domain.correlation_id import CorrelationLoggerAdapter, get_logger
from dummy_server.domain.http_types import HttpRequest, should_close
from dummy_server.domain.response_builders import (
    bad_request_response,
    internal_error_response,
    stream_headers,
)
from dummy_server.domain.stream_errors import (
    BufferUnavailable,
    InvalidBufferParameter,
    InvalidSizeParameter,
    ReadFailure,
    ShortRead,
    ShortWrite,
    SourceUnavailable,
    StreamError,
    WriteFailure,
)
from dummy_server.domain.stream_params import (
    MIN_BUFFER,
    MIN_SIZE,
    StreamParameters,
    resolve_buffer,
    resolve_size,
)
from dummy_server.pipeline.io import ResponseWriter

STREAM_LOGGER = get_logger("handlers.stream")

OK_STATUS = "HTTP/1.1 200 OK"


class StreamHandler:
    """Serves every request with ``size`` bytes read from a byte source."""

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        open_source: SourceOpener,
        default_size: int = DEFAULT_DATA_SIZE,
        default_buffer: int = DEFAULT_BUFFER_SIZE,
        logger: CorrelationLoggerAdapter = STREAM_LOGGER,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_size < MIN_SIZE:
            raise ValueError(f"default size must be at least {MIN_SIZE}")
        if default_buffer < MIN_BUFFER:
            raise ValueError(f"default buffer must be at least {MIN_BUFFER}")
        self._open_source = open_source
        self._default_size = default_size
        self._default_buffer = default_buffer
        self._logger = logger
        self._clock = clock

    def serve(self, request: HttpRequest, writer: ResponseWriter) -> bool:
        """Answer ``request`` and return whether the connection must be closed."""
        start_time = self._clock()
        self._logger.info(
            "Received request",
            extra={
                "event": "request_received",
                "method": request.method,
                "path": request.path,
                "query": request.query,
                "headers": redact_headers(request.headers),
            },
        )

        try:
            params = self._resolve_parameters(request)
        except (InvalidSizeParameter, InvalidBufferParameter) as error:
            self._logger.error(
                "Failed to parse %s query parameter",
                "size" if isinstance(error, InvalidSizeParameter) else "buffer",
                extra={
                    "event": error.event,
                    "value": error.value,
                    "error": error.reason,
                },
            )
            response = bad_request_response(request, SECURITY_HEADERS)
            writer.send(response)
            return response.close_connection

        try:
            source = self._open_source()
        except SourceUnavailable as error:
            self._logger.error(
                "Failed to open data file",
                extra={"event": error.event, "error": str(error)},
            )
            response = internal_error_response(request, SECURITY_HEADERS)
            writer.send(response)
            return response.close_connection

        close_connection = should_close(request.headers)
        send_body = request.method != "HEAD"
        with source:
            try:
                chunk_buffer = _allocate_chunk_buffer(params, send_body)
            except BufferUnavailable as error:
                self._logger.error(
                    "Failed to allocate buffer",
                    extra={
                        "event": error.event,
                        "buffer": params.buffer_size,
                        "error": str(error),
                    },
                )
                response = internal_error_response(request, SECURITY_HEADERS)
                writer.send(response)
                return response.close_connection

            try:
                self._stream(source, writer, params, close_connection, chunk_buffer)
            except StreamError:
                return True

        self._logger.info(
            "Data sent" if send_body else "Headers sent",
            extra={
                "event": "stream_complete" if send_body else "head_complete",
                "size": params.total_size if send_body else 0,
                "buffer": params.buffer_size,
                "duration_ms": round((self._clock() - start_time) * 1000, 3),
            },
        )
        return close_connection

    def _resolve_parameters(self, request: HttpRequest) -> StreamParameters:
        total_size = resolve_size(request, self._default_size)
        self._logger.info(
            "Response size", extra={"event": "size_resolved", "size": total_size}
        )
        buffer_size = resolve_buffer(request, self._default_buffer)
        self._logger.info(
            "Buffer size", extra={"event": "buffer_resolved", "size": buffer_size}
        )
        return StreamParameters(total_size, buffer_size)

    def _stream(
        self,
        source: ByteSource,
        writer: ResponseWriter,
        params: StreamParameters,
        close_connection: bool,
        chunk_buffer: Optional[memoryview],
    ) -> None:
        try:
            writer.start(
                OK_STATUS,
                stream_headers(STREAM_CONTENT_TYPE, SECURITY_HEADERS),
                close_connection,
                send_body=chunk_buffer is not None,
            )
        except OSError as exc:
            error = WriteFailure(str(exc))
            self._transfer_failed(error, 0, params.total_size)
            raise error from exc

        remaining = params.total_size if chunk_buffer is not None else 0
        while remaining > 0:
            chunk_len = min(remaining, params.buffer_size)
            chunk = chunk_buffer[:chunk_len]
            try:
                _read_chunk(source, chunk)
                _write_chunk(writer, chunk)
            except StreamError as error:
                self._transfer_failed(error, chunk_len, remaining)
                raise
            remaining -= chunk_len

        try:
            writer.finish()
        except OSError as exc:
            error = WriteFailure(str(exc))
            self._transfer_failed(error, 0, 0)
            raise error from exc

    def _transfer_failed(self, error: StreamError, size: int, remaining: int) -> None:
        extra = {
            "event": error.event,
            "size": size,
            "remaining": remaining,
            "error": str(error),
        }
        if isinstance(error, (ShortRead, ShortWrite)):
            extra["expected"] = error.expected
            extra["actual"] = error.actual
        if isinstance(error, ReadFailure):
            message = "Failed to read data"
        else:
            message = "Failed to write data"
        self._logger.error(message, extra=extra)


def _allocate_chunk_buffer(
    params: StreamParameters, send_body: bool
) -> Optional[memoryview]:
    """Return the reusable chunk buffer, or ``None`` when no body is sent."""
    if not send_body:
        return None
    length = min(params.buffer_size, params.total_size)
    try:
        return memoryview(bytearray(length))
    except (MemoryError, OverflowError) as exc:
        raise BufferUnavailable(f"cannot allocate {length} bytes") from exc


def _read_chunk(source: ByteSource, chunk: memoryview) -> None:
    try:
        count = source.readinto(chunk)
    except ReadFailure:
        raise
    except OSError as exc:
        raise ReadFailure(str(exc)) from exc
    if count != len(chunk):
        raise ShortRead(len(chunk), count or 0)


def _write_chunk(writer: ResponseWriter, chunk: memoryview) -> None:
    try:
        count = writer.write(chunk)
    except OSError as exc:
        raise WriteFailure(str(exc)) from exc
    if count != len(chunk):
        raise ShortWrite(len(chunk), count)
