"""Logging setup for the ``chatbox`` logger namespace."""

import logging
import sys
from typing import Optional

NAMESPACE = "chatbox"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# SDK loggers that report every HTTP request at INFO
SDK_LOGGERS = ("httpx", "openai", "anthropic")


class StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is when a record is emitted."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the chatbox logger. Handlers are attached once; later calls
    only change levels.
    """
    logger = logging.getLogger(NAMESPACE)
    logger.setLevel(level)
    for name in SDK_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = StderrHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, placed under the chatbox namespace."""
    if name == NAMESPACE or name.startswith(f"{NAMESPACE}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{NAMESPACE}.{name}")
