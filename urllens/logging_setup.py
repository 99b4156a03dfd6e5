"""Logging configuration for the command line."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Route log records through Rich.

    Library modules only create loggers; handlers are installed here, once,
    by the CLI.

    Args:
        verbose: Log at DEBUG instead of WARNING.
        console: Console to write to (stderr by default).
    """
    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        show_time=True,
        rich_tracebacks=True,
        markup=False,
        log_time_format="[%H:%M:%S]",
    )

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[rich_handler],
        force=True,
    )

    # Per-request lines from the HTTP stack drown out discovery progress
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
