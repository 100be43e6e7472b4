"""Diagnostic logging setup for the irctl CLI."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "[%(filename)s:%(lineno)d] %(message)s"
_ROOT_LOGGER = "irctl"


class _BelowWarning(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def configure_logging(verbose: bool) -> logging.Logger:
    """Route irctl records to stdout (informational) and stderr (errors).

    Informational records are only emitted when `verbose` is set; warnings and
    errors are always written to stderr.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT)

    if verbose:
        info_handler = logging.StreamHandler(sys.stdout)
        info_handler.setLevel(logging.DEBUG)
        info_handler.addFilter(_BelowWarning())
        info_handler.setFormatter(formatter)
        logger.addHandler(info_handler)

    error_handler = logging.StreamHandler(sys.stderr)
    error_handler.setLevel(logging.WARNING)
    error_handler.setFormatter(formatter)
    logger.addHandler(error_handler)
    return logger
