"""Context object shared across worker threads."""

from dataclasses import dataclass

from dummy_server.bootstrap.config import ServerConfig
from dummy_server.domain.byte_source import file_source_opener
from dummy_server.handlers.stream_handler import StreamHandler


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads; none of them is mutable."""

    handler: StreamHandler
    config: ServerConfig


def build_worker_context(config: ServerConfig) -> WorkerContext:
    """Wire the stream handler to the configured byte source and defaults."""
    handler = StreamHandler(
        file_source_opener(config.source_path),
        default_size=config.default_size,
        default_buffer=config.default_buffer,
    )
    return WorkerContext(handler=handler, config=config)
