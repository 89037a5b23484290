"""Pure builders for the complete (non-streamed) responses."""

from typing import Optional

from dummy_server.domain.http_types import HttpRequest, HttpResponse, should_close


def _close_preference(request: Optional[HttpRequest]) -> bool:
    return should_close(request.headers) if request is not None else True


def bad_request_response(
    request: Optional[HttpRequest], security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 400 response honoring the caller's connection preference."""
    return HttpResponse(
        "HTTP/1.1 400 Bad Request",
        security_headers.copy(),
        b"",
        _close_preference(request),
    )


def internal_error_response(
    request: HttpRequest, security_headers: dict[str, str]
) -> HttpResponse:
    """Produce an empty 500 response."""
    return HttpResponse(
        "HTTP/1.1 500 Internal Server Error",
        security_headers.copy(),
        b"",
        should_close(request.headers),
    )


def entity_too_large_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    return HttpResponse(
        "HTTP/1.1 413 Payload Too Large", security_headers.copy(), b"", True
    )


def stream_headers(
    content_type: str, security_headers: dict[str, str]
) -> dict[str, str]:
    """Headers sent ahead of a streamed body."""
    return {"Content-Type": content_type, **security_headers}
