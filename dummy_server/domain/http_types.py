"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass, field


@dataclass
class HttpRequest:
    """Represents a parsed HTTP request."""

    method: str
    path: str
    headers: dict[str, str]
    body: bytes
    query: dict[str, list[str]] = field(default_factory=dict)

    def query_value(self, name: str) -> str:
        """Return the first value of a query parameter, or '' when absent."""
        values = self.query.get(name)
        return values[0] if values else ""


@dataclass
class HttpResponse:
    """A complete, non-streamed HTTP response."""

    status_line: str
    headers: dict[str, str]
    body: bytes
    close_connection: bool


def should_close(headers: dict[str, str]) -> bool:
    """Determine whether the connection should be closed after responding."""
    return headers.get("connection", "").lower() == "close"
