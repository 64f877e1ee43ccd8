"""
Logging setup for Steward.

All output goes to stderr: stdout carries the MCP stdio transport.
"""

import os
import sys
from typing import Optional

from loguru import logger as _logger

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

_logger.configure(extra={"name": "steward"})


def setup_logging(level: Optional[str] = None):
    """Replace the default loguru sink with a stderr sink at the given level."""
    level = (level or os.environ.get("STEWARD_LOG_LEVEL") or "INFO").upper()
    _logger.remove()
    _logger.add(sys.stderr, level=level, format=LOG_FORMAT, colorize=False)


def get_logger(name: str):
    """Return a logger bound to a module name."""
    return _logger.bind(name=name)
