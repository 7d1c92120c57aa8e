"""Process-wide, swappable logger used by aumos-permits.

By default everything goes to the stdlib ``logging.getLogger("aumos_permits")``
logger, so host applications configure it like any other library logger.
Any object with ``debug``, ``warning`` and ``error`` methods taking
``logging``-style ``(msg, *args)`` arguments can be installed instead::

    from aumos_permits.logger import set_logger

    set_logger(structlog_adapter)   # custom
    set_logger(None)                # silence completely
"""
from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

LOGGER_NAME = "aumos_permits"


@runtime_checkable
class PermissionsLogger(Protocol):
    """Minimal logger interface; :class:`logging.Logger` satisfies it."""

    def debug(self, msg: object, *args: object, **kwargs: object) -> None: ...

    def warning(self, msg: object, *args: object, **kwargs: object) -> None: ...

    def error(self, msg: object, *args: object, **kwargs: object) -> None: ...


def _build_null_logger() -> logging.Logger:
    null_logger = logging.getLogger(f"{LOGGER_NAME}.null")
    null_logger.addHandler(logging.NullHandler())
    null_logger.propagate = False
    null_logger.disabled = True
    return null_logger


_DEFAULT_LOGGER: logging.Logger = logging.getLogger(LOGGER_NAME)
_NULL_LOGGER: logging.Logger = _build_null_logger()

_current: PermissionsLogger = _DEFAULT_LOGGER


def get_logger() -> PermissionsLogger:
    """Return the logger currently used by the engine."""
    return _current


def set_logger(logger: PermissionsLogger | None) -> PermissionsLogger:
    """Install *logger* process-wide and return it.

    Parameters
    ----------
    logger:
        The replacement logger, or ``None`` to disable logging entirely.

    Returns
    -------
    PermissionsLogger
        The logger now in effect.
    """
    global _current
    _current = _NULL_LOGGER if logger is None else logger
    return _current


def reset_logger() -> PermissionsLogger:
    """Restore the default ``aumos_permits`` stdlib logger."""
    return set_logger(_DEFAULT_LOGGER)
