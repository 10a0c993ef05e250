"""Logging setup."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "WARNING") -> None:
    """Send log records to stderr through rich.

    Args:
        level: Level name such as "DEBUG" or "WARNING"
    """
    handler = RichHandler(
        console=Console(stderr=True),
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
    # keep per-request noise out unless debugging
    logging.getLogger("httpx").setLevel(max(logging.getLogger().level, logging.WARNING))
