"""
Logging utilities for the pump.fun SDK.
"""

import logging
import sys

# Global dict to store loggers
_loggers: dict[str, logging.Logger] = {}

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Get or create a logger with the given name.

    Args:
        name: Logger name, typically __name__
        level: Logging level

    Returns:
        Configured logger
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(console_handler)

    _loggers[name] = logger
    return logger


def set_level(level: int) -> None:
    """Change the level of every logger handed out so far.

    Args:
        level: New logging level
    """
    for logger in _loggers.values():
        logger.setLevel(level)


def setup_file_logging(
    filename: str = "pumpfun_sdk.log", level: int = logging.INFO
) -> None:
    """Set up file logging for all loggers.

    Args:
        filename: Log file path
        level: Logging level for file handler
    """
    root_logger = logging.getLogger()

    file_handler = logging.FileHandler(filename)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))

    root_logger.addHandler(file_handler)
