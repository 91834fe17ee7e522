from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "proctorsignals"


def setup_logging(level: int | str = logging.INFO, console: Console | None = None) -> logging.Logger:
    """Attach a single rich handler to the package logger.

    Calling it again only updates the level, so repeated CLI invocations in
    one process do not stack handlers.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    handler = next((h for h in logger.handlers if isinstance(h, RichHandler)), None)
    if handler is None:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
    handler.setLevel(level)
    return logger
