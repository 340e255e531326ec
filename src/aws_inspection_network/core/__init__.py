"""Core utilities for the inspection network resolver"""

from .ids import resource_id
from .renderer import DisplayRenderer
from .logging import setup_logging, get_logger, logger

__all__ = [
    "resource_id",
    "DisplayRenderer",
    "setup_logging",
    "get_logger",
    "logger",
]
