"""Centralized logging configuration for hexview using Loguru.

Provides consistent logging across the preview pipeline with support for:
- Multiple output formats (console, JSON, structured, rich)
- Environment-based configuration
- Session-scoped context (the active project session id)
- Idempotent configuration

Examples
--------
Basic usage:

>>> from hexview.kernel.logging import get_logger
>>> logger = get_logger(__name__)
>>> logger.info("Rebuild started", revision=3)

Configure logging globally::

    from hexview.kernel.logging import configure_logging
    configure_logging(level="DEBUG", format="rich")
"""

from __future__ import annotations

import contextvars
import logging
import os
import sys
from contextlib import suppress
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from loguru import logger
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    import types

    from loguru import Logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["console", "json", "structured", "rich", "dual"]

_CURRENT_CONFIG: dict | None = None
_HANDLER_IDS: list[int] = []

# Session id of the project currently being driven, for log correlation
session_id: contextvars.ContextVar[str] = contextvars.ContextVar("session_id", default="-")


def _rich_handler(include_timestamp: bool) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        markup=False,
        show_time=include_timestamp,
        show_level=True,
        show_path=True,
    )


def configure_logging(
    level: LogLevel = "INFO",
    format: LogFormat = "structured",
    output_file: str | Path | None = None,
    use_color: bool = True,
    include_timestamp: bool = True,
    force_reconfigure: bool = False,
    enable_stdlib_bridge: bool = False,
    backtrace: bool = True,
    diagnose: bool = False,
) -> None:
    """Configure global logging for hexview.

    Calling it again with the same configuration is a no-op.

    Parameters
    ----------
    level : LogLevel, default="INFO"
        Minimum log level to output
    format : LogFormat, default="structured"
        Output format:
        - "console": plain single-line output
        - "json": serialized records for log aggregation
        - "structured": Loguru format with module/function/line
        - "rich": Rich console handler
        - "dual": Rich to stderr plus JSON to stdout
    output_file : str | Path | None, default=None
        Optional file path to write JSON logs to (in addition to the console)
    use_color : bool, default=True
        Use ANSI colors in the structured format (disabled for non-TTY)
    include_timestamp : bool, default=True
        Include timestamp in log output
    force_reconfigure : bool, default=False
        Reconfigure even if the configuration did not change
    enable_stdlib_bridge : bool, default=False
        Route stdlib ``logging`` records (uvicorn, httpx) through Loguru
    backtrace : bool, default=True
        Extended tracebacks
    diagnose : bool, default=False
        Show variable values in tracebacks (leaks file contents; keep off in servers)
    """
    global _CURRENT_CONFIG

    current_config = {
        "level": level,
        "format": format,
        "output_file": str(output_file) if output_file else None,
        "use_color": use_color,
        "include_timestamp": include_timestamp,
        "enable_stdlib_bridge": enable_stdlib_bridge,
        "backtrace": backtrace,
        "diagnose": diagnose,
    }

    if not force_reconfigure and current_config == _CURRENT_CONFIG:
        return

    # Remove only our own handlers so pytest's caplog bridge keeps working
    for handler_id in _HANDLER_IDS:
        with suppress(ValueError):
            logger.remove(handler_id)
    _HANDLER_IDS.clear()

    if format == "dual":
        _HANDLER_IDS.append(
            logger.add(
                sink=_rich_handler(include_timestamp),
                level=level,
                format="{message}",
                backtrace=backtrace,
                diagnose=diagnose,
            )
        )
        _HANDLER_IDS.append(
            logger.add(
                sink=sys.stdout,
                level=level,
                serialize=True,
                backtrace=backtrace,
                diagnose=diagnose,
            )
        )

    elif format == "rich":
        _HANDLER_IDS.append(
            logger.add(
                sink=_rich_handler(include_timestamp),
                level=level,
                format="{message}",
                backtrace=backtrace,
                diagnose=diagnose,
            )
        )

    elif format == "json":
        _HANDLER_IDS.append(
            logger.add(
                sink=sys.stderr,
                level=level,
                serialize=True,
                backtrace=backtrace,
                diagnose=diagnose,
            )
        )

    elif format == "structured":
        timestamp_fmt = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> " if include_timestamp else ""
        colorize = use_color and sys.stderr.isatty()
        color_level = "<level>{level: <8}</level>" if colorize else "{level: <8}"
        structured_format = (
            f"{timestamp_fmt}[{color_level}]"
            "<cyan>{name}:{function}:{line}</cyan> | <level>{message}</level>"
        )
        _HANDLER_IDS.append(
            logger.add(
                sink=sys.stderr,
                level=level,
                format=structured_format,
                colorize=colorize,
                backtrace=backtrace,
                diagnose=diagnose,
            )
        )

    else:  # console
        timestamp_fmt = "{time:YYYY-MM-DD HH:mm:ss} " if include_timestamp else ""
        _HANDLER_IDS.append(
            logger.add(
                sink=sys.stderr,
                level=level,
                format=f"{timestamp_fmt}{{level: <8}} | {{name}} | {{message}}",
                colorize=False,
                backtrace=backtrace,
                diagnose=diagnose,
            )
        )

    if output_file:
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        _HANDLER_IDS.append(
            logger.add(
                sink=output_path,
                level=level,
                serialize=True,
                rotation="10 MB",
                retention="1 week",
                backtrace=backtrace,
                diagnose=diagnose,
            )
        )

    if enable_stdlib_bridge:
        enable_stdlib_logging_bridge()

    _CURRENT_CONFIG = current_config


@lru_cache(maxsize=256)
def get_logger(name: str) -> Logger:
    """Get a logger bound with the given module name.

    Parameters
    ----------
    name : str
        Logger name, typically ``__name__`` of the calling module

    Returns
    -------
    loguru.Logger
        Logger instance bound with ``module=name``

    Notes
    -----
    If :func:`configure_logging` has not been called yet, it is called with
    defaults taken from ``HEXVIEW_LOG_LEVEL`` / ``HEXVIEW_LOG_FORMAT``.
    """
    _ensure_configured()
    return logger.bind(module=name).patch(_inject_session)


def _inject_session(record: dict) -> None:
    record["extra"].setdefault("session", session_id.get())


def enable_stdlib_logging_bridge() -> None:
    """Redirect stdlib ``logging`` records into Loguru."""

    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            level: str | int
            try:
                level = logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

            frame: types.FrameType | None = sys._getframe(6)
            depth = 6
            while frame and frame.f_code.co_filename == logging.__file__:
                frame = frame.f_back
                depth += 1

            logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def set_session_id(sid: str) -> None:
    """Set the project session id for the current context."""
    session_id.set(sid)


def get_session_id() -> str:
    """Get the current session id, or ``"-"`` if not set."""
    return session_id.get()


def _ensure_configured() -> None:
    """Apply default configuration on first use."""
    if _CURRENT_CONFIG is None:
        level = os.getenv("HEXVIEW_LOG_LEVEL", "INFO").upper()
        format_type = os.getenv("HEXVIEW_LOG_FORMAT", "structured").lower()
        output_file = os.getenv("HEXVIEW_LOG_FILE") or None
        configure_logging(
            level=level,  # type: ignore[arg-type]
            format=format_type,  # type: ignore[arg-type]
            output_file=output_file,
        )


__all__ = [
    "LogFormat",
    "LogLevel",
    "configure_logging",
    "enable_stdlib_logging_bridge",
    "get_logger",
    "get_session_id",
    "set_session_id",
]
