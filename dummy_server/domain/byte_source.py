"""Scoped access to a file of pseudo-random bytes such as ``/dev/urandom``."""

from typing import BinaryIO, Callable, Optional, Protocol

from dummy_server.domain.correlation_id import get_logger
from dummy_server.domain.stream_errors import ReadFailure, SourceUnavailable

SOURCE_LOGGER = get_logger("domain.byte_source")


class ByteSource(Protocol):
    """What the stream handler needs from a source of bytes."""

    def readinto(self, buffer: memoryview) -> int:
        """Fill ``buffer`` and return the number of bytes actually read."""

    def close(self) -> None:
        """Release the underlying handle."""

    def __enter__(self) -> "ByteSource":
        ...

    def __exit__(self, *exc_info) -> None:
        ...


SourceOpener = Callable[[], ByteSource]


class FileByteSource:
    """A device or regular file read without Python-level buffering.

    Each ``readinto`` issues a single read, so a device returning less than
    asked is reported as a short count rather than being hidden by retries.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._handle: Optional[BinaryIO] = None
        try:
            # pylint: disable-next=consider-using-with
            self._handle = open(path, "rb", buffering=0)
        except OSError as exc:
            raise SourceUnavailable(f"cannot open {path}: {exc}") from exc

    def readinto(self, buffer: memoryview) -> int:
        if self._handle is None:
            raise ReadFailure(f"{self.path} is closed")
        try:
            count = self._handle.readinto(buffer)
        except OSError as exc:
            raise ReadFailure(str(exc)) from exc
        return count or 0

    def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        try:
            handle.close()
        except OSError as exc:
            SOURCE_LOGGER.error(
                "Failed to close data file",
                extra={
                    "event": "source_close_failed",
                    "source": self.path,
                    "error": str(exc),
                },
            )

    def __enter__(self) -> "FileByteSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def file_source_opener(path: str) -> SourceOpener:
    """Return a callable opening a fresh ``FileByteSource`` on ``path``."""

    def _open() -> FileByteSource:
        return FileByteSource(path)

    return _open
