"""Structured JSON logging configuration."""

import logging
import sys
from pythonjsonlogger import jsonlogger


LOGGER_NAME = "service-metrics"


def setup_logger(
    name: str = LOGGER_NAME,
    level: str = "INFO",
    error_level: str = "ERROR"
) -> logging.Logger:
    """
    Configure structured JSON logging.

    Records at ``level`` and above go to stdout; records at ``error_level``
    and above are additionally written to stderr.

    Args:
        name: Logger name
        level: Stdout log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        error_level: Stderr log level

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    stdout_level = getattr(logging, level.upper())
    stderr_level = getattr(logging, error_level.upper())
    logger.setLevel(min(stdout_level, stderr_level))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        timestamp=True
    )

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(stdout_level)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(stderr_level)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger
