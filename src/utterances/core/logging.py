"""Logging setup for the relay and CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def configure_logging(level: str = "info", console: Console | None = None) -> None:
    """Install a rich log handler on the root logger.

    Args:
        level: One of LOG_LEVELS.
        console: Console to log to. Defaults to stderr.
    """
    if level.lower() not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}")

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
