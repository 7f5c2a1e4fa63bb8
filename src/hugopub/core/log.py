"""Logging setup for the hugopub CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "hugopub"


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Attach a Rich handler to the ``hugopub`` logger once.

    Verbose mode logs at DEBUG; otherwise only warnings are shown.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in logger.handlers:
        if isinstance(handler, RichHandler):
            return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
