"""Logging setup for the command line tool."""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that are chatty at DEBUG
NOISY_LOGGERS = ["sqlalchemy.engine", "sqlalchemy.pool"]


def setup_logging(level: str = "WARNING") -> logging.Logger:
    """Send shopledger logs to stderr at the given level.

    Calling it again replaces the handler instead of adding a second one.

    Returns:
        The ``shopledger`` package logger
    """
    logger = logging.getLogger("shopledger")
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        if getattr(handler, "_shopledger", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler._shopledger = True
    logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
