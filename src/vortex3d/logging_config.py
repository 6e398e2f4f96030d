"""Console and run-file logging for the vortex3d loggers."""
from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> logging.Logger:
    """
    Route the ``vortex3d`` loggers (integrators, run driver) to stdout.

    Args:
        level: threshold for the package logger and its handlers.
        log_file: if given, the run log is also written there (overwritten).

    Calling it again replaces the handlers of the previous call.
    """
    logger = logging.getLogger("vortex3d")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging to stdout%s.", f" and {log_file}" if log_file else "")
    return logger
