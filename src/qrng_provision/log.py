"""Logging setup.

Modules log through ``logging.getLogger(__name__)``; the CLI installs a
rich console handler once at startup.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "qrng_provision"

_handler: Optional[RichHandler] = None


def setup_logging(
    level: str = "INFO",
    rich_tracebacks: bool = True,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach a RichHandler to the package logger.

    Calling this again replaces the previous handler rather than stacking.
    """
    global _handler

    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=rich_tracebacks,
        show_path=False,
    )
    _handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(_handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger
