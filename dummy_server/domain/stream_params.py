"""Resolution of the ``size`` and ``buffer`` query parameters."""

import re
from dataclasses import dataclass
from typing import Callable

from dummy_server.domain.http_types import HttpRequest
from dummy_server.domain.stream_errors import (
    InvalidBufferParameter,
    InvalidSizeParameter,
    StreamError,
)

SIZE_PARAMETER = "size"
BUFFER_PARAMETER = "buffer"
MIN_SIZE = 0
MIN_BUFFER = 1

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

_DECIMAL = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class StreamParameters:
    """Validated sizes for one stream request."""

    total_size: int
    buffer_size: int


def parse_decimal(text: str) -> int:
    """Parse a signed 64-bit base-10 integer.

    Unlike ``int()``, surrounding whitespace and digit separators are refused.
    """
    if not _DECIMAL.fullmatch(text):
        raise ValueError("not a base-10 integer")
    value = int(text, 10)
    if value < INT64_MIN or value > INT64_MAX:
        raise ValueError("value out of range")
    return value


def _resolve(
    text: str,
    default: int,
    minimum: int,
    error: Callable[[str, str], StreamError],
) -> int:
    if text == "":
        return default
    try:
        value = parse_decimal(text)
    except ValueError as exc:
        raise error(text, str(exc)) from exc
    if value < minimum:
        raise error(text, f"must be at least {minimum}")
    return value


def resolve_size(request: HttpRequest, default: int) -> int:
    """Return the total number of bytes to send for ``request``."""
    return _resolve(
        request.query_value(SIZE_PARAMETER), default, MIN_SIZE, InvalidSizeParameter
    )


def resolve_buffer(request: HttpRequest, default: int) -> int:
    """Return the chunk size to copy with for ``request``."""
    return _resolve(
        request.query_value(BUFFER_PARAMETER),
        default,
        MIN_BUFFER,
        InvalidBufferParameter,
    )
