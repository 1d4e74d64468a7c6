"""femtologging integration for gitreporter.

Every module obtains its logger through :func:`get_logger` and emits
pre-formatted messages through the ``log_*`` helpers so that level names and
percent-style interpolation stay consistent across the scheduler, delivery
and source adapters.

Example:
>>> from gitreporter.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Polled %d schedules", 3)

"""

from __future__ import annotations

import enum
import os
import typing as typ

from femtologging import basicConfig, get_logger

LOG_LEVEL_ENV_VAR = "GITREPORTER_LOG_LEVEL"
_DEFAULT_LEVEL = "INFO"


class LogLevel(enum.StrEnum):
    """Log levels accepted by femtologging."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class _SupportsLog(typ.Protocol):
    """Minimal logger surface used by the helpers below."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Return ``(level, invalid)`` for a raw level string.

    Unknown or empty values fall back to ``INFO`` and set the ``invalid``
    flag so callers can warn about the misconfiguration.
    """
    candidate = (level or "").strip().upper()
    if candidate in LogLevel.__members__:
        return (candidate, False)
    return (_DEFAULT_LEVEL, True)


def configure_logging(
    level: str | None = None, *, force: bool = False
) -> tuple[str, bool]:
    """Configure femtologging from ``level`` or ``GITREPORTER_LOG_LEVEL``.

    Parameters
    ----------
    level : str | None, optional
        Explicit level name. When omitted the environment variable is read.
    force : bool, optional
        Replace any handler configuration installed earlier.

    Returns
    -------
    tuple[str, bool]
        The level actually applied and whether the input was invalid.

    """
    raw = level if level is not None else os.environ.get(LOG_LEVEL_ENV_VAR)
    normalized, invalid = normalize_log_level(raw)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def format_log_message(template: str, *args: object) -> str:
    """Interpolate ``args`` into ``template`` using ``%`` formatting."""
    if not args:
        return template
    return template % args


def _emit(
    logger: _SupportsLog,
    level: LogLevel,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    logger.log(
        level.value,
        format_log_message(template, *args),
        exc_info=exc_info,
        stack_info=False,
    )


def log_debug(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a DEBUG message."""
    _emit(logger, LogLevel.DEBUG, template, args, exc_info)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an INFO message."""
    _emit(logger, LogLevel.INFO, template, args, exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a WARNING message."""
    _emit(logger, LogLevel.WARNING, template, args, exc_info)


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log an ERROR message."""
    _emit(logger, LogLevel.ERROR, template, args, exc_info)


__all__ = [
    "LOG_LEVEL_ENV_VAR",
    "LogLevel",
    "configure_logging",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
