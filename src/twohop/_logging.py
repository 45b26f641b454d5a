"""Stderr logging for the twohop CLI and MCP server.

Modules log through ``logging.getLogger(__name__)``. The entry points call
configure_logging() once; TWOHOP_LOG_LEVEL picks the level (INFO by default)
and --quiet drops everything below ERROR.
"""

import logging
import os
import sys

PACKAGE_LOGGER = "twohop"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _env_level() -> int:
    name = os.environ.get("TWOHOP_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _apply_level(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def configure_logging(quiet: bool = False) -> None:
    """Attach the stderr handler to the twohop logger, once.

    The stdout of both entry points carries results, so log records stay on
    stderr and never reach the root logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    set_quiet_mode(quiet)


def set_quiet_mode(quiet: bool) -> None:
    """Only let errors through when quiet; otherwise use TWOHOP_LOG_LEVEL."""
    _apply_level(logging.getLogger(PACKAGE_LOGGER), logging.ERROR if quiet else _env_level())
