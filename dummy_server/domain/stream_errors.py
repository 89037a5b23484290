"""Failures that end a stream request."""


class StreamError(Exception):
    """Base class for errors that stop a single stream request."""

    event = "stream_failed"


class InvalidSizeParameter(StreamError):
    """The ``size`` query parameter is not a usable base-10 integer."""

    event = "invalid_size"

    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"invalid size {value!r}: {reason}")
        self.value = value
        self.reason = reason


class InvalidBufferParameter(StreamError):
    """The ``buffer`` query parameter is not a usable base-10 integer."""

    event = "invalid_buffer"

    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"invalid buffer {value!r}: {reason}")
        self.value = value
        self.reason = reason


class SourceUnavailable(StreamError):
    """The pseudo-random byte source could not be opened."""

    event = "source_unavailable"


class ReadFailure(StreamError):
    """Reading from the byte source raised an error."""

    event = "read_failed"


class ShortRead(ReadFailure):
    """The byte source returned fewer bytes than requested."""

    event = "short_read"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"read {actual} of {expected} bytes")
        self.expected = expected
        self.actual = actual


class WriteFailure(StreamError):
    """Writing to the client raised an error, typically a closed connection."""

    event = "write_failed"


class ShortWrite(WriteFailure):
    """The response writer accepted fewer bytes than requested."""

    event = "short_write"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"wrote {actual} of {expected} bytes")
        self.expected = expected
        self.actual = actual


class BufferUnavailable(StreamError):
    """The chunk buffer for the requested ``buffer`` size could not be allocated."""

    event = "buffer_unavailable"
