"""Structured logging for gatherer-mes.

:func:`configure_logging` installs one structlog pipeline that renders both
application events and stdlib records from uvicorn, SQLAlchemy and Alembic.
Service operations run inside :func:`operation_context`, so every event
emitted while an operation executes carries its ``operation`` name.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Library loggers that are too chatty at the application level
LIBRARY_LEVELS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
}


def _drop_color_message(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """uvicorn repeats its message under ``color_message``."""
    event_dict.pop("color_message", None)
    return event_dict


def _resolve_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    return level


@contextmanager
def operation_context(operation: str, **fields: Any) -> Iterator[None]:
    """Bind ``operation`` (and any extra fields) to every event logged inside the block.

    Args:
        operation: Qualified name of the running service operation
        **fields: Additional context, e.g. ``equipment_id``
    """
    with structlog.contextvars.bound_contextvars(operation=operation, **fields):
        yield


def configure_logging(log_format: str = "console", log_level: str = "INFO") -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_format: "console" for coloured development output, "json" for
            one JSON object per line
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR)

    Raises:
        ValueError: If ``log_level`` is not a logging level name
    """
    level = _resolve_level(log_level)
    json_output = log_format == "json"

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _drop_color_message,
    ]
    if json_output:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name, library_level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(max(level, library_level))
