"""
Logging configuration for modelgen.

Usage in modules:
    from .gen_logging import get_logger
    logger = get_logger(__name__)

The root logger name is "modelgen". Levels are controlled by the CLI.
"""

from __future__ import annotations

import logging
import sys

_LOGGER_NAME = "modelgen"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a child logger under the modelgen hierarchy."""
    if name is None or name == _LOGGER_NAME:
        return logging.getLogger(_LOGGER_NAME)
    # Keep only the last dotted component, e.g. "tests.test_model" -> "modelgen.test_model"
    short = name.rsplit(".", 1)[-1]
    return logging.getLogger(f"{_LOGGER_NAME}.{short}")


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Configure the modelgen logger hierarchy.

    Levels:
        --verbose / -v  -> DEBUG   (pipeline step output)
        (default)       -> INFO    (step progress)
        --quiet / -q    -> WARNING (warnings and errors only)
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    root_logger = logging.getLogger(_LOGGER_NAME)
    root_logger.setLevel(level)

    # Avoid duplicate handlers when called multiple times
    if root_logger.handlers:
        for handler in root_logger.handlers:
            handler.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root_logger.addHandler(handler)
    root_logger.propagate = False
