"""Package logger setup (rich console handler)."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "poolbatch"


def configure_logging(level: str = "INFO", *, console: Console | None = None) -> logging.Logger:
    """Attach one RichHandler to the package logger without duplicating handlers."""
    logger = logging.getLogger(LOGGER_NAME)
    if not getattr(logger, "_poolbatch_configured", False):
        handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False
        setattr(logger, "_poolbatch_configured", True)

    logger.setLevel(level.upper())
    return logger
