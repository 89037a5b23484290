"""Per-request correlation IDs carried through contextvars into every log record."""

import contextlib
import contextvars
import logging
import re
import uuid
from typing import Any, Iterator, MutableMapping, Optional

LOGGER_PREFIX = "dummy_server."
MAX_INCOMING_ID_LENGTH = 128

_VALID_INCOMING_ID = re.compile(r"^[A-Za-z0-9._:\-]+$")

_correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)


def generate_correlation_id() -> str:
    """Generate a new correlation ID using UUID4."""
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Retrieve the current correlation ID from context."""
    return _correlation_id_var.get()


def adopt_correlation_id(incoming: Optional[str]) -> bool:
    """Replace the current ID with a client supplied one when it is well formed.

    The value ends up in a response header, so anything outside a conservative
    token alphabet or longer than ``MAX_INCOMING_ID_LENGTH`` is ignored.
    """
    if not incoming or len(incoming) > MAX_INCOMING_ID_LENGTH:
        return False
    if not _VALID_INCOMING_ID.match(incoming):
        return False
    _correlation_id_var.set(incoming)
    return True


@contextlib.contextmanager
def correlation_scope() -> Iterator[str]:
    """Bind a fresh correlation ID for the duration of one request."""
    token = _correlation_id_var.set(generate_correlation_id())
    try:
        yield _correlation_id_var.get()
    finally:
        _correlation_id_var.reset(token)


class CorrelationLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter adding ``correlation_id`` and ``component`` to each record."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        correlation_id = get_correlation_id()
        extra["correlation_id"] = correlation_id if correlation_id is not None else "-"
        extra["component"] = component_name(self.logger.name)
        kwargs["extra"] = extra
        return msg, kwargs


def component_name(logger_name: str) -> str:
    """Strip the project prefix from a logger name."""
    if logger_name.startswith(LOGGER_PREFIX):
        return logger_name[len(LOGGER_PREFIX) :]
    return logger_name


def get_logger(name: str) -> CorrelationLoggerAdapter:
    """Return the correlation-aware adapter for a ``dummy_server`` child logger."""
    return CorrelationLoggerAdapter(logging.getLogger(f"{LOGGER_PREFIX}{name}"), {})
