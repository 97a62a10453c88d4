"""Logging setup shared by the checker, the CLI and the service."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "includecheck"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger below the ``includecheck`` namespace."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def _level_for(verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def configure_logging(
    *, verbose: bool = False, quiet: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Attach console (and optionally file) handlers to the includecheck logger.

    ``verbose`` enables the per-tag and per-edge traces emitted at DEBUG level;
    ``quiet`` limits console output to warnings. Verbose wins when both are set.
    """
    level = _level_for(verbose, quiet)
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Drop handlers from earlier calls so output is never duplicated.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter("[includecheck] %(levelname)s %(message)s"))
    logger.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s")
        )
        logger.addHandler(file_handler)
        if level > logging.DEBUG:
            logger.setLevel(logging.DEBUG)
            console.setLevel(level)

    return logger


__all__ = ["configure_logging", "get_logger"]
