"""
Verbose output for circe-tools.

Module loggers are children of the ``circe_tools`` package logger. Until
``enable_verbose`` attaches a stream handler the package logger only
carries a NullHandler. Verbose records go to stderr so that command output
on stdout (JSON reports, netlists) stays machine-readable.

Example::

    >>> from circe_tools.schematic.logging import verbose
    >>> with verbose("DEBUG"):
    ...     session.commit_grab()  # logs prunes, routing jobs, history steps
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO, Union

PACKAGE_LOGGER = "circe_tools"
DEFAULT_FORMAT = "%(levelname)-7s %(name)s: %(message)s"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())

_handler: Optional[logging.Handler] = None


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level {level!r}")
    return value


def enable_verbose(
    level: Union[int, str] = "DEBUG",
    stream: Optional[TextIO] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Handler:
    """Route circe-tools log records at or above ``level`` to ``stream``.

    Calling it again replaces the handler installed by the previous call,
    so records are never printed twice.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or number
        stream: Destination (default: the current ``sys.stderr``)
        fmt: ``logging.Formatter`` format string

    Returns:
        The installed handler
    """
    global _handler
    resolved = _resolve_level(level)
    disable_verbose()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.addHandler(handler)
    logger.setLevel(resolved)
    _handler = handler
    return handler


def disable_verbose() -> None:
    """Remove the handler installed by ``enable_verbose`` and reset the level."""
    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        _handler.flush()
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)


def is_verbose() -> bool:
    return _handler is not None


@contextmanager
def verbose(level: Union[int, str] = "DEBUG", stream: Optional[TextIO] = None) -> Iterator[logging.Handler]:
    """Verbose output for the duration of a ``with`` block."""
    handler = enable_verbose(level, stream)
    try:
        yield handler
    finally:
        disable_verbose()
