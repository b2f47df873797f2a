"""Structured logging for tradewatch: structlog rendered through stdlib handlers.

Every event carries the batch sequence number when emitted inside
``batch_context``, so the log lines of overlapping refresh cycles can be
told apart.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# Library loggers that would otherwise repeat what the aggregator already reports
_LIBRARY_LEVELS = {
    "aiohttp": logging.ERROR,
    "uvicorn.access": logging.WARNING,
}


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog and stdlib logging through one handler.

    Args:
        log_level: Root level name (DEBUG, INFO, ...). Unknown names mean INFO.
        log_format: "json" for one JSON object per line, anything else for
            the colored console renderer.
    """
    if log_format.lower() == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name, level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)


@contextmanager
def batch_context(seq: int) -> Iterator[None]:
    """Tag every event logged inside the block with ``batch_seq``."""
    with structlog.contextvars.bound_contextvars(batch_seq=seq):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
