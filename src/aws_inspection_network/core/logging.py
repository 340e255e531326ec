"""Logging configuration for the inspection network resolver."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# Package logger; resolver stages log through children of it
logger = logging.getLogger("aws_inspection_network")


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Configure logging for the resolver and CLI.

    Args:
        debug: Enable debug level logging
        log_file: Optional file path for a full debug log
        console: Console for the rich handler (defaults to stderr)

    Returns:
        Configured logger instance
    """
    # The file log records DEBUG even when the console stays at warnings
    logger.setLevel(logging.DEBUG if debug or log_file else logging.INFO)
    logger.handlers.clear()

    # Console output stays quiet (warnings+) unless debugging
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=debug,
        markup=False,
        rich_tracebacks=debug,
    )
    handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger, e.g. get_logger('spokes')."""
    return logger.getChild(name)
