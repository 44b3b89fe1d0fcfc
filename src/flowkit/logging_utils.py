"""Process-level loguru setup."""

from __future__ import annotations

import os
import sys
from typing import Any, Literal

import loguru
from loguru import logger
from rich import get_console
from rich.logging import RichHandler

LogProfile = Literal["default", "console", "json"]

_DEFAULT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<7} | {extra[span]} | {name}:{line} | {message}"
_active: tuple[LogProfile, str] | None = None


def _with_span(record: loguru.Record) -> None:
    from flowkit.tracing.span import current_span_name

    record["extra"]["span"] = current_span_name()


def _sink_for(profile: LogProfile) -> tuple[Any, dict[str, Any]]:
    match profile:
        case "console":
            handler = RichHandler(
                console=get_console(),
                show_time=False,
                show_path=False,
                markup=False,
                rich_tracebacks=False,
            )
            return handler, {"format": "[{extra[span]}] {message}"}
        case "json":
            return sys.stderr, {"serialize": True}
        case _:
            return sys.stderr, {"format": _DEFAULT_FORMAT}


def configure_logging(*, profile: LogProfile = "default", level: str | None = None) -> None:
    """Route loguru output through the handler of ``profile``.

    Every record carries the name of the innermost open span in
    ``extra["span"]``. Repeating the same profile and level is a no-op.
    """
    global _active
    resolved = (level or os.getenv("FLOWKIT_LOG_LEVEL", "INFO")).upper()
    if _active == (profile, resolved):
        return

    sink, options = _sink_for(profile)
    logger.remove()
    logger.configure(patcher=_with_span)
    logger.add(sink, level=resolved, backtrace=False, diagnose=False, **options)
    _active = (profile, resolved)
