"""Structured logging setup for taskdep.

Events are rendered by structlog and routed through the standard library
root logger onto stderr, leaving stdout for the DOT text that ``--dot``
prints.

Example:
    >>> from taskdep.log_config import configure_logging, get_logger
    >>> configure_logging(level="INFO")
    >>> get_logger(__name__).info("taskfile_parsed", task_count=12)
"""

import logging
import sys
from typing import Any

import structlog

CALLSITE_FIELDS = (
    structlog.processors.CallsiteParameter.MODULE,
    structlog.processors.CallsiteParameter.FUNC_NAME,
    structlog.processors.CallsiteParameter.LINENO,
)


def _resolve_level(level: str) -> int:
    numeric_level = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric_level, int):
        msg = f"Invalid log level: {level}"
        raise ValueError(msg)
    return numeric_level


def _event_processors(json_logs: bool) -> list[Any]:
    # Context variables first so bound keys such as ``taskfile`` reach the renderer.
    chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(parameters=list(CALLSITE_FIELDS)),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_logs:
        chain.append(structlog.processors.JSONRenderer())
    else:
        chain.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            ),
        )
    return chain


def configure_logging(level: str = "WARNING", json_logs: bool = False) -> None:
    """Route taskdep's structlog events to stderr.

    Safe to call more than once; the CLI configures a provisional level
    before the configuration file is read and then reconfigures.

    Args:
        level: Level name, case-insensitive (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render one JSON object per line instead of console lines

    Raises:
        ValueError: If the level name is not recognised
    """
    numeric_level = _resolve_level(level)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )

    # Loggers are not cached: a later reconfiguration must reach module-level loggers.
    structlog.configure(
        processors=_event_processors(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach key-value pairs to every event logged in the current context.

    Example:
        >>> bind_context(taskfile="Taskfile.yaml")
        >>> get_logger(__name__).info("rendering_started")  # carries taskfile
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Drop every bound context variable."""
    structlog.contextvars.clear_contextvars()
