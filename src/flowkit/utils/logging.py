"""Logfire setup for flowkit spans."""

from __future__ import annotations

from typing import TYPE_CHECKING

import logfire

if TYPE_CHECKING:
    from flowkit.config import Settings


def configure_logfire(settings: Settings) -> None:
    """Configure Logfire as the OpenTelemetry backend of flowkit spans.

    Args:
        settings: Loaded settings; ``logfire_send`` and ``logfire_console`` decide where spans go
    """
    console: logfire.ConsoleOptions | bool = False
    if settings.logfire_console:
        console = logfire.ConsoleOptions(
            colors="auto",
            span_style="indented",
        )
    logfire.configure(
        service_name="flowkit",
        console=console,
        send_to_logfire=settings.logfire_send,
    )
